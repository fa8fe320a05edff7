"""Core data models for Pairwise Elo.

This module defines the data structures shared by the rating engine, the
matchmaking selector and the rating store:
- PlayerRecord: Rating and counters for one item inside one cohort
- CohortData: All player records of one cohort
- CohortDefinition: How a cohort's membership is computed, plus its key
- UndoFrame: Full pre-match snapshots that reverse one comparison
- EloStore: The persisted root aggregate

Persisted field names are camelCase (``lastUsedCohortKey``, ``createdAt``);
Python code uses snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

DEFAULT_RATING = 1500.0


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchOutcome(str, Enum):
    """Result of one comparison, from the first item's point of view."""

    FIRST_WINS = "A"
    SECOND_WINS = "B"
    DRAW = "D"

    @property
    def score_a(self) -> float:
        """Actual score credited to the first item."""
        if self is MatchOutcome.FIRST_WINS:
            return 1.0
        elif self is MatchOutcome.SECOND_WINS:
            return 0.0
        else:
            return 0.5


class PlayerRecord(CamelModel):
    """Rating state of one item inside one cohort.

    Attributes:
        rating: Current Elo rating.
        matches: Number of comparisons played.
        wins: Number of comparisons won (draws count toward neither side).
    """

    rating: float = DEFAULT_RATING
    matches: int = Field(default=0, ge=0)
    wins: int = Field(default=0, ge=0)


class PlayerSnapshot(CamelModel):
    """Frozen copy of a player record, captured before a match."""

    model_config = ConfigDict(frozen=True)

    id: str
    rating: float
    matches: int
    wins: int


class UndoFrame(CamelModel):
    """Everything needed to reverse a single applied match.

    Attributes:
        cohort_key: Cohort the match was played in.
        a: Snapshot of the first item before the match.
        b: Snapshot of the second item before the match.
        result: The outcome that was applied.
        ts: Time the match was applied (epoch milliseconds).
    """

    model_config = ConfigDict(frozen=True)

    cohort_key: str
    a: PlayerSnapshot
    b: PlayerSnapshot
    result: MatchOutcome
    ts: int = 0


class CohortData(CamelModel):
    """All players of one cohort, keyed by item identity."""

    players: dict[str, PlayerRecord] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Cohort parameters: one variant per cohort kind
# ---------------------------------------------------------------------------


class VaultAllParams(CamelModel):
    """Every item the host knows about."""

    kind: Literal["vault:all"] = "vault:all"


class FolderParams(CamelModel):
    """Items directly inside one folder."""

    kind: Literal["folder"] = "folder"
    path: str = ""


class FolderRecursiveParams(CamelModel):
    """Items anywhere below one folder."""

    kind: Literal["folder-recursive"] = "folder-recursive"
    path: str = ""


class TagAnyParams(CamelModel):
    """Items carrying at least one of the tags."""

    kind: Literal["tag:any"] = "tag:any"
    tags: list[str] = Field(default_factory=list)


class TagAllParams(CamelModel):
    """Items carrying every one of the tags."""

    kind: Literal["tag:all"] = "tag:all"
    tags: list[str] = Field(default_factory=list)


class ManualParams(CamelModel):
    """An explicit, hand-picked list of item paths."""

    kind: Literal["manual"] = "manual"
    paths: list[str] = Field(default_factory=list)


class BaseParams(CamelModel):
    """Items listed by a saved query ("base"), optionally one of its views."""

    kind: Literal["base"] = "base"
    base_id: str = ""
    view: str | None = None


CohortParams = Annotated[
    Union[
        VaultAllParams,
        FolderParams,
        FolderRecursiveParams,
        TagAnyParams,
        TagAllParams,
        ManualParams,
        BaseParams,
    ],
    Field(discriminator="kind"),
]


class CohortDefinition(CamelModel):
    """Describes how a cohort's membership is computed.

    Persisted as ``{key, kind, params, label, createdAt, updatedAt,
    frontmatterOverrides}``. In memory the kind lives on the params variant.

    Attributes:
        key: Canonical key derived from the kind and normalized params.
        params: Kind-specific parameters.
        label: Optional display label.
        created_at: Creation time (epoch milliseconds).
        updated_at: Last key or override change (epoch milliseconds).
        frontmatter_overrides: Per-cohort publishing options, opaque here.
    """

    key: str
    params: CohortParams
    label: str | None = None
    created_at: int = 0
    updated_at: int = 0
    frontmatter_overrides: dict[str, Any] | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_kind_into_params(cls, data: Any) -> Any:
        """Accept the persisted layout where ``kind`` sits next to ``params``."""
        if isinstance(data, dict) and "kind" in data:
            params = data.get("params") or {}
            if isinstance(params, dict) and "kind" not in params:
                data = {**data, "params": {**params, "kind": data["kind"]}}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def kind(self) -> str:
        return self.params.kind

    @field_serializer("params")
    def _serialize_params(self, params: BaseModel) -> dict[str, Any]:
        return params.model_dump(by_alias=True, exclude={"kind"}, exclude_none=True)


class EloStore(CamelModel):
    """Root persisted aggregate, exclusively owned by the rating store."""

    version: int = 1
    cohorts: dict[str, CohortData] = Field(default_factory=dict)
    cohort_defs: dict[str, CohortDefinition] = Field(default_factory=dict)
    last_used_cohort_key: str | None = None


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class RatingStats(BaseModel):
    """Live rating and match count used by matchmaking."""

    rating: float = DEFAULT_RATING
    matches: int = 0


class RatingUpdate(BaseModel):
    """Result of a single rating update.

    Attributes:
        new_a: Updated rating of the first item.
        new_b: Updated rating of the second item.
        k_a: Effective K applied to the first item.
        k_b: Effective K applied to the second item.
        expected_a: Expected score of the first item before the match.
    """

    new_a: float
    new_b: float
    k_a: float
    k_b: float
    expected_a: float


class MatchApplied(BaseModel):
    """Outcome of applying a match to the store."""

    winner_id: str | None = None
    undo: UndoFrame


class PairPick(BaseModel):
    """Indices of the next pair to compare.

    ``left_index``/``right_index`` are -1 (and ``pair_sig`` empty) when fewer
    than two candidates exist.
    """

    left_index: int = -1
    right_index: int = -1
    pair_sig: str = ""

    @property
    def is_pair(self) -> bool:
        return self.left_index >= 0 and self.right_index >= 0

