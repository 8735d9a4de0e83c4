"""
Activity Matcher — does a logged activity count as completing an SOP task?

SOP tasks are high-level ("Weeding", "Spraying/Drenching"); attendance
activities are granular and typed by hand ("Weeding and Top Dressing",
"Sowing media preparation", "carring compost"). Matching is case and
whitespace insensitive. Rules, first hit wins:

1. Exact normalized equality.
2. Alias table: the activity equals or starts with a variant listed for the task.
3. Activity starts with the task followed by " " or "/".
4. Task starts with the activity followed by " " or "/".

The alias table is versioned domain data. A silent mismatch corrupts
compliance numbers without raising, so the built-in table is reproduced
verbatim and alternates are injected, never edited in place.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from farmops import config

logger = logging.getLogger(__name__)

# =============================================================================
# BUILT-IN ALIAS TABLE
# =============================================================================

ALIAS_TABLE_VERSION = "2026.01"

# Keys are normalized SOP tasks, values are normalized activity variants
# that count as completing that task.
DEFAULT_TASK_ALIASES: dict[str, tuple[str, ...]] = {
    "carrying compost": ("carring compost", "tranporting compost", "manure transportation"),
    "fertiliza application": ("fertilizer application", "top dressing"),
    "furrow tracing": ("tracing furrows", "furrows making"),
    "holes digging": ("digging holes", "holingout"),
    "holes digging for stakes": ("digging holes", "holingout"),
    "manure incoporation": ("manure incorporation", "compost incorporation", "manure application"),
    "trelissing": ("trellising", "threllising"),
    "pitmos spreading and sowing": ("sowing", "sowing media preparation"),
    "spraying/drenching": ("spraying", "drenching"),
    "hand weeding and top dressing": ("hand weeding", "weeding and top dressing", "weeding & top dressing"),
    "weeding and top dressing": ("weeding and top dressing", "weeding & top dressing", "hand weeding"),
    "pinching of the broccoli head": ("defloration", "pruning", "prunning"),
}


def normalize(text: str) -> str:
    """Lowercase, trim, collapse internal whitespace."""
    return " ".join(text.lower().split())


# =============================================================================
# ALIAS TABLE
# =============================================================================


@dataclass(frozen=True)
class TaskAliasTable:
    """Versioned mapping of normalized SOP task -> accepted activity variants."""

    version: str
    aliases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, version: str, mapping: Mapping[str, Iterable[str]]) -> "TaskAliasTable":
        """Build a table, normalizing keys and variants."""
        normalized: dict[str, tuple[str, ...]] = {}
        for task, variants in mapping.items():
            if isinstance(variants, str):
                raise ValueError(f"Aliases for {task!r} must be a list, got a string")
            normalized[normalize(task)] = tuple(normalize(v) for v in variants)
        return cls(version=str(version), aliases=normalized)

    @classmethod
    def load(cls, path: str | Path) -> "TaskAliasTable":
        """
        Load a table from YAML:

            version: "2026.02"
            aliases:
              carrying compost: [carring compost, manure transportation]

        Raises FileNotFoundError if missing and ValueError if malformed.
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict) or not isinstance(data.get("aliases"), dict):
            raise ValueError(f"{path}: expected a mapping with an 'aliases' mapping")
        if "version" not in data:
            raise ValueError(f"{path}: alias table has no version")
        table = cls.from_mapping(data["version"], data["aliases"])
        logger.info("Loaded task alias table %s (%d tasks) from %s", table.version, len(table.aliases), path)
        return table

    def variants_for(self, sop_task: str) -> tuple[str, ...]:
        return self.aliases.get(normalize(sop_task), ())


DEFAULT_ALIAS_TABLE = TaskAliasTable(version=ALIAS_TABLE_VERSION, aliases=DEFAULT_TASK_ALIASES)


def configured_alias_table() -> TaskAliasTable:
    """Alias table selected by FARMOPS_TASK_ALIASES, else the built-in one."""
    if config.TASK_ALIASES_PATH:
        return TaskAliasTable.load(config.TASK_ALIASES_PATH)
    return DEFAULT_ALIAS_TABLE


# =============================================================================
# MATCHING
# =============================================================================


def matches(activity: str, sop_task: str, aliases: TaskAliasTable = DEFAULT_ALIAS_TABLE) -> bool:
    """True if the logged activity should count as completing the SOP task."""
    norm_activity = normalize(activity)
    norm_task = normalize(sop_task)

    if norm_activity == norm_task:
        return True

    mapped = aliases.variants_for(norm_task)
    if mapped and any(norm_activity == m or norm_activity.startswith(m) for m in mapped):
        return True

    # "Sowing media preparation" satisfies "Sowing"
    if norm_activity.startswith(norm_task + " ") or norm_activity.startswith(norm_task + "/"):
        return True

    # "Spraying" satisfies "Spraying/Drenching"
    if norm_task.startswith(norm_activity + " ") or norm_task.startswith(norm_activity + "/"):
        return True

    return False


class ActivityMatcher:
    """Matcher bound to one alias table."""

    def __init__(self, aliases: TaskAliasTable | None = None):
        self.aliases = aliases or DEFAULT_ALIAS_TABLE

    @property
    def version(self) -> str:
        return self.aliases.version

    def matches(self, activity: str, sop_task: str) -> bool:
        return matches(activity, sop_task, self.aliases)

    def any_matches(self, activities: Iterable[str], sop_task: str) -> bool:
        return any(self.matches(a, sop_task) for a in activities)
