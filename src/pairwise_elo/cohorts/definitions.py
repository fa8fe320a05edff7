"""Cohort definitions and their canonical keys.

A cohort key is a deterministic serialization of a cohort's kind and its
normalized parameters, so structurally identical definitions always share a
key regardless of the order in which tags or paths were discovered:

    vault:all
    folder:<path>
    folder-recursive:<path>
    tag:any:<#tag|#tag...>      (normalized, sorted)
    tag:all:<#tag|#tag...>      (normalized, sorted)
    manual:<path|path...>       (sorted)
    base:<baseId>[|view=<view>]
"""

from __future__ import annotations

import time
from typing import Any

from ..exceptions import UnknownCohortKindError
from ..models import (
    BaseParams,
    CohortDefinition,
    FolderParams,
    FolderRecursiveParams,
    ManualParams,
    TagAllParams,
    TagAnyParams,
    VaultAllParams,
)

PARAMS_BY_KIND: dict[str, type] = {
    "vault:all": VaultAllParams,
    "folder": FolderParams,
    "folder-recursive": FolderRecursiveParams,
    "tag:any": TagAnyParams,
    "tag:all": TagAllParams,
    "manual": ManualParams,
    "base": BaseParams,
}

AnyCohortParams = (
    VaultAllParams
    | FolderParams
    | FolderRecursiveParams
    | TagAnyParams
    | TagAllParams
    | ManualParams
    | BaseParams
)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def normalise_tag(tag: str | None) -> str:
    """Trim a tag and give it a leading ``#``. Empty input stays empty."""
    t = (tag or "").strip()
    if not t:
        return ""
    return t if t.startswith("#") else f"#{t}"


def _canonical_tags(tags: list[str]) -> list[str]:
    """Normalized, sorted, de-duplicated tags without blanks or a bare ``#``.

    Keys written elsewhere may keep duplicates (``tag:any:#a|#a``). Such a key
    still parses, but rebuilding it yields the de-duplicated ``tag:any:#a``,
    so it will not match the stored key byte for byte.
    """
    return sorted({normalise_tag(t) for t in tags} - {"", "#"})


def make_params(kind: str, **fields: Any) -> AnyCohortParams:
    """Build the parameter variant for ``kind``.

    Args:
        kind: Cohort kind, e.g. ``"folder"`` or ``"tag:any"``.
        **fields: Kind-specific fields (``path``, ``tags``, ``paths``,
            ``base_id``, ``view``).

    Returns:
        The matching parameter model.

    Raises:
        UnknownCohortKindError: If ``kind`` has no parameter variant.
    """
    params_class = PARAMS_BY_KIND.get(kind)
    if params_class is None:
        raise UnknownCohortKindError(kind, list(PARAMS_BY_KIND))
    return params_class(**fields)


def make_cohort_key(params: AnyCohortParams) -> str:
    """Canonical key for a set of cohort parameters."""
    if isinstance(params, VaultAllParams):
        return "vault:all"
    if isinstance(params, FolderParams):
        return f"folder:{params.path}"
    if isinstance(params, FolderRecursiveParams):
        return f"folder-recursive:{params.path}"
    if isinstance(params, TagAnyParams):
        return f"tag:any:{'|'.join(_canonical_tags(params.tags))}"
    if isinstance(params, TagAllParams):
        return f"tag:all:{'|'.join(_canonical_tags(params.tags))}"
    if isinstance(params, ManualParams):
        return f"manual:{'|'.join(sorted(params.paths))}"
    if isinstance(params, BaseParams):
        view = f"|view={params.view}" if params.view else ""
        return f"base:{params.base_id}{view}"
    raise UnknownCohortKindError(type(params).__name__, list(PARAMS_BY_KIND))


def parse_cohort_key(key: str) -> AnyCohortParams | None:
    """Recover cohort parameters from a key, or ``None`` if unrecognized."""
    if key == "vault:all":
        return VaultAllParams()
    if key.startswith("folder-recursive:"):
        return FolderRecursiveParams(path=key[len("folder-recursive:"):])
    if key.startswith("folder:"):
        return FolderParams(path=key[len("folder:"):])
    if key.startswith("tag:any:"):
        raw = key[len("tag:any:"):]
        return TagAnyParams(tags=[t for t in map(normalise_tag, raw.split("|")) if t])
    if key.startswith("tag:all:"):
        raw = key[len("tag:all:"):]
        return TagAllParams(tags=[t for t in map(normalise_tag, raw.split("|")) if t])
    if key.startswith("manual:"):
        return ManualParams(paths=[p for p in key[len("manual:"):].split("|") if p])
    if key.startswith("base:"):
        base_id, *rest = key[len("base:"):].split("|")
        view = None
        for part in rest:
            name, _, value = part.partition("=")
            if name == "view":
                view = value
        return BaseParams(base_id=base_id, view=view)
    return None


def pretty_cohort_label(params: AnyCohortParams) -> str:
    """Human-readable description of a cohort."""
    if isinstance(params, VaultAllParams):
        return "Vault: all notes"
    if isinstance(params, FolderParams):
        return f"Folder: {params.path}"
    if isinstance(params, FolderRecursiveParams):
        return f"Folder (recursive): {params.path}"
    if isinstance(params, TagAnyParams):
        return f"Tag (any): {', '.join(params.tags)}"
    if isinstance(params, TagAllParams):
        return f"Tag (all): {', '.join(params.tags)}"
    if isinstance(params, ManualParams):
        return f"Manual ({len(params.paths)} notes)"
    if isinstance(params, BaseParams):
        return f"Base: {params.base_id}" + (f" ({params.view})" if params.view else "")
    raise UnknownCohortKindError(type(params).__name__, list(PARAMS_BY_KIND))


def create_definition(
    params: AnyCohortParams,
    label: str | None = None,
    frontmatter_overrides: dict[str, Any] | None = None,
) -> CohortDefinition:
    """Create a new cohort definition with its canonical key.

    Args:
        params: Kind-specific parameters.
        label: Optional display label.
        frontmatter_overrides: Optional per-cohort publishing options.

    Returns:
        CohortDefinition with matching created/updated timestamps.
    """
    ts = now_ms()
    return CohortDefinition(
        key=make_cohort_key(params),
        params=params,
        label=label,
        created_at=ts,
        updated_at=ts,
        frontmatter_overrides=frontmatter_overrides,
    )


def definition_from_key(key: str) -> CohortDefinition | None:
    """Rebuild a definition for a stored key that lost its definition."""
    params = parse_cohort_key(key)
    if params is None:
        return None
    ts = now_ms()
    return CohortDefinition(
        key=key,
        params=params,
        label=pretty_cohort_label(params),
        created_at=ts,
        updated_at=ts,
    )
