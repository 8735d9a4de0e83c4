"""
Phase activity overrides — manual add/remove corrections to the crop-week schedule.

An override is keyed by (farm phase, SOP id, SOP type, week start) and
carries one action. Interpretation lives here as a table of handlers so the
resolver only ever calls apply_overrides(); a new action is a new handler.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date

from farmops.errors import InvalidInput
from farmops.models import OverrideAction, PhaseOverride, SopType

logger = logging.getLogger(__name__)

# handler(selected_ids, natural_ids, override) mutates selected_ids in place
OverrideHandler = Callable[[list[int], frozenset[int], PhaseOverride], None]


def _apply_add(selected: list[int], natural: frozenset[int], override: PhaseOverride) -> None:
    """Treat an SOP as due this week even though its week offset does not match."""
    if override.sop_id in natural or override.sop_id in selected:
        return
    selected.append(override.sop_id)


def _apply_remove(selected: list[int], natural: frozenset[int], override: PhaseOverride) -> None:
    """Suppress an otherwise-due SOP."""
    while override.sop_id in selected:
        selected.remove(override.sop_id)


OVERRIDE_HANDLERS: dict[OverrideAction, OverrideHandler] = {
    OverrideAction.ADD: _apply_add,
    OverrideAction.REMOVE: _apply_remove,
}


def apply_overrides(natural_ids: Iterable[int], overrides: Iterable[PhaseOverride]) -> list[int]:
    """
    SOP ids due after overrides, natural order first, additions appended.

    overrides must already be narrowed to one phase, one SOP type and one week.
    Removals run before additions so the result does not depend on row order.
    """
    selected = list(dict.fromkeys(natural_ids))
    natural = frozenset(selected)
    ordered = sorted(overrides, key=lambda o: (o.action != OverrideAction.REMOVE, o.sop_id))
    for override in ordered:
        OVERRIDE_HANDLERS[override.action](selected, natural, override)
    return selected


class OverrideSet:
    """Overrides for one week, indexed for per-phase lookup."""

    def __init__(self, overrides: Iterable[PhaseOverride] = (), week_start: date | None = None):
        self._by_key: dict[tuple[int, int, SopType], PhaseOverride] = {}
        for o in overrides:
            if week_start is not None and o.week_start != week_start:
                continue
            # One override per key; a later row wins, matching upsert semantics
            self._by_key[(o.farm_phase_id, o.sop_id, o.sop_type)] = o

    def __len__(self) -> int:
        return len(self._by_key)

    def for_phase(self, farm_phase_id: int, sop_type: SopType) -> list[PhaseOverride]:
        return [
            o
            for (phase_id, _sop_id, kind), o in self._by_key.items()
            if phase_id == farm_phase_id and kind == sop_type
        ]


def build_override(
    farm_phase_id,
    sop_id,
    sop_type,
    week_start: date,
    action,
) -> PhaseOverride:
    """Validate raw override fields. Raises InvalidInput."""
    try:
        phase = int(farm_phase_id)
        sop = int(sop_id)
    except (TypeError, ValueError) as e:
        raise InvalidInput("farmPhaseId and sopId must be integers") from e
    if phase <= 0 or sop <= 0:
        raise InvalidInput("farmPhaseId, sopId, sopType, action, and weekStart are required")
    try:
        kind = SopType(sop_type)
    except ValueError as e:
        raise InvalidInput("sopType must be 'labor' or 'nutri'") from e
    try:
        act = OverrideAction(action)
    except ValueError as e:
        raise InvalidInput("action must be 'add' or 'remove'") from e
    return PhaseOverride(farm_phase_id=phase, sop_id=sop, sop_type=kind, week_start=week_start, action=act)
