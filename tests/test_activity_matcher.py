"""
Tests for the activity matcher: does a logged activity complete an SOP task?
"""

import pytest

from farmops import paths
from farmops.activity_matcher import (
    ALIAS_TABLE_VERSION,
    DEFAULT_ALIAS_TABLE,
    ActivityMatcher,
    TaskAliasTable,
    matches,
    normalize,
)


class TestNormalize:
    def test_lowercases_and_trims(self):
        assert normalize("  Weeding ") == "weeding"

    def test_collapses_internal_whitespace(self):
        assert normalize("Hand\t weeding   and\ntop dressing") == "hand weeding and top dressing"


class TestRules:
    """Exact, alias, activity-prefix, task-prefix; first hit wins."""

    def test_exact_ignores_case_and_spacing(self):
        assert matches("  WEEDING ", "Weeding")

    def test_activity_extends_task(self):
        assert matches("Weeding and Top Dressing", "Weeding")

    def test_activity_extends_task_with_slash(self):
        assert matches("Sowing/transplanting", "Sowing")

    def test_task_extends_activity(self):
        assert matches("Spraying", "Spraying/Drenching")

    def test_task_extends_activity_with_space(self):
        assert matches("Hand", "Hand weeding")

    def test_word_prefix_without_separator_does_not_match(self):
        assert not matches("Harvesting fine beans", "Harvest")

    def test_unrelated_activity(self):
        assert not matches("Irrigation", "Weeding")

    def test_empty_activity_does_not_match(self):
        assert not matches("", "Weeding")


class TestDefaultAliases:
    def test_table_version(self):
        assert DEFAULT_ALIAS_TABLE.version == ALIAS_TABLE_VERSION == "2026.01"

    def test_table_has_twelve_tasks(self):
        assert len(DEFAULT_ALIAS_TABLE.aliases) == 12

    @pytest.mark.parametrize(
        "activity,task",
        [
            ("carring compost", "Carrying compost"),
            ("Manure transportation", "Carrying compost"),
            ("Top dressing", "Fertiliza application"),
            ("Furrows making", "Furrow tracing"),
            ("Holingout", "Holes digging for stakes"),
            ("Compost incorporation", "Manure incoporation"),
            ("Threllising", "Trelissing"),
            ("Sowing media preparation", "Pitmos spreading and sowing"),
            ("Drenching", "Spraying/Drenching"),
            ("Weeding & top dressing", "Hand weeding and top dressing"),
            ("Hand weeding", "Weeding and top dressing"),
            ("Prunning", "Pinching of the broccoli head"),
        ],
    )
    def test_alias_matches(self, activity, task):
        assert matches(activity, task)

    def test_alias_prefix_matches(self):
        # "digging holes" is a listed variant; longer activity text still counts
        assert matches("Digging holes for poles", "Holes digging")

    def test_alias_is_not_symmetric(self):
        assert not matches("Pinching of the broccoli head", "Defloration")


class TestTaskAliasTable:
    def test_from_mapping_normalizes(self):
        table = TaskAliasTable.from_mapping("t1", {"  Mulching ": ["Grass  Spreading"]})
        assert table.variants_for("mulching") == ("grass spreading",)

    def test_from_mapping_rejects_string_variants(self):
        with pytest.raises(ValueError):
            TaskAliasTable.from_mapping("t1", {"mulching": "grass spreading"})

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text('version: "2026.02"\naliases:\n  Mulching: [grass spreading, straw laying]\n')
        table = TaskAliasTable.load(path)
        assert table.version == "2026.02"
        assert matches("Straw laying", "Mulching", table)
        # Built-in entries are not inherited
        assert not matches("carring compost", "Carrying compost", table)

    def test_load_rejects_missing_version(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text("aliases:\n  mulching: [grass spreading]\n")
        with pytest.raises(ValueError):
            TaskAliasTable.load(path)

    def test_load_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            TaskAliasTable.load(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TaskAliasTable.load(tmp_path / "nope.yaml")

    def test_shipped_yaml_matches_builtin(self):
        table = TaskAliasTable.load(paths.project_root() / "config" / "task_aliases.yaml")
        assert table == DEFAULT_ALIAS_TABLE


class TestActivityMatcher:
    def test_defaults_to_builtin_table(self):
        assert ActivityMatcher().version == ALIAS_TABLE_VERSION

    def test_injected_table(self):
        matcher = ActivityMatcher(TaskAliasTable.from_mapping("custom", {"mulching": ["straw laying"]}))
        assert matcher.version == "custom"
        assert matcher.matches("straw laying", "Mulching")

    def test_any_matches(self):
        matcher = ActivityMatcher()
        assert matcher.any_matches(["Irrigation", "Weeding and top dressing"], "Weeding")
        assert not matcher.any_matches([], "Weeding")
