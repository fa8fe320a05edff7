"""Tests for cohort definitions and keys."""

import pytest

from pairwise_elo import (
    BaseParams,
    FolderParams,
    FolderRecursiveParams,
    ManualParams,
    TagAllParams,
    TagAnyParams,
    UnknownCohortKindError,
    VaultAllParams,
    create_definition,
    definition_from_key,
    make_cohort_key,
    make_params,
    normalise_tag,
    parse_cohort_key,
    pretty_cohort_label,
)


# ============================================================================
# Key Tests
# ============================================================================


class TestMakeCohortKey:
    """Tests for make_cohort_key."""

    @pytest.mark.parametrize(
        "params,expected",
        [
            (VaultAllParams(), "vault:all"),
            (FolderParams(path="notes/books"), "folder:notes/books"),
            (FolderRecursiveParams(path="notes"), "folder-recursive:notes"),
            (TagAnyParams(tags=["b", "#a"]), "tag:any:#a|#b"),
            (TagAllParams(tags=["x"]), "tag:all:#x"),
            (ManualParams(paths=["z.md", "a.md"]), "manual:a.md|z.md"),
            (BaseParams(base_id="reading"), "base:reading"),
            (BaseParams(base_id="reading", view="Table"), "base:reading|view=Table"),
        ],
    )
    def test_keys(self, params, expected):
        assert make_cohort_key(params) == expected

    def test_tag_order_irrelevant(self):
        first = make_cohort_key(TagAnyParams(tags=["#one", "two", " three "]))
        second = make_cohort_key(TagAnyParams(tags=["three", "#two", "one"]))
        assert first == second == "tag:any:#one|#three|#two"

    def test_tags_deduplicated_and_blanks_dropped(self):
        key = make_cohort_key(TagAllParams(tags=["a", "#a", "", "  ", "#"]))
        assert key == "tag:all:#a"


class TestParseCohortKey:
    """Tests for parse_cohort_key."""

    @pytest.mark.parametrize(
        "key",
        [
            "vault:all",
            "folder:notes",
            "folder-recursive:notes/deep",
            "tag:any:#a|#b",
            "tag:all:#x",
            "manual:a.md|b.md",
            "base:reading",
            "base:reading|view=Table",
        ],
    )
    def test_key_survives_parse(self, key):
        assert make_cohort_key(parse_cohort_key(key)) == key

    def test_duplicate_tags_rebuild_deduplicated(self):
        params = parse_cohort_key("tag:any:#a|#a")
        assert params.tags == ["#a", "#a"]
        assert make_cohort_key(params) == "tag:any:#a"

    def test_folder_recursive_not_confused_with_folder(self):
        assert isinstance(parse_cohort_key("folder-recursive:x"), FolderRecursiveParams)

    def test_unknown(self):
        assert parse_cohort_key("smart:thing") is None


class TestNormaliseTag:
    """Tests for normalise_tag."""

    def test_adds_hash(self):
        assert normalise_tag("books") == "#books"

    def test_keeps_hash_and_trims(self):
        assert normalise_tag("  #books ") == "#books"

    def test_empty(self):
        assert normalise_tag("") == ""
        assert normalise_tag(None) == ""


# ============================================================================
# Definition Tests
# ============================================================================


class TestDefinitions:
    """Tests for building definitions."""

    def test_create_definition(self):
        definition = create_definition(TagAnyParams(tags=["b", "a"]), label="Reading")
        assert definition.key == "tag:any:#a|#b"
        assert definition.kind == "tag:any"
        assert definition.label == "Reading"
        assert definition.created_at == definition.updated_at > 0

    def test_make_params(self):
        params = make_params("folder", path="notes")
        assert isinstance(params, FolderParams)
        assert params.path == "notes"

    def test_make_params_unknown_kind(self):
        with pytest.raises(UnknownCohortKindError, match="smart"):
            make_params("smart")

    def test_definition_from_key(self):
        definition = definition_from_key("folder:notes")
        assert definition.key == "folder:notes"
        assert definition.label == "Folder: notes"
        assert definition_from_key("nope") is None

    @pytest.mark.parametrize(
        "params,expected",
        [
            (VaultAllParams(), "Vault: all notes"),
            (FolderRecursiveParams(path="n"), "Folder (recursive): n"),
            (TagAllParams(tags=["#a", "#b"]), "Tag (all): #a, #b"),
            (ManualParams(paths=["a", "b", "c"]), "Manual (3 notes)"),
            (BaseParams(base_id="r", view="v"), "Base: r (v)"),
        ],
    )
    def test_pretty_label(self, params, expected):
        assert pretty_cohort_label(params) == expected
