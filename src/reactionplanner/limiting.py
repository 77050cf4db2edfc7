"""Limiting reagent resolution."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from reactionplanner.constants import LIMITING_SM
from reactionplanner.models import ReactionPlan

LimitingKey = Optional[str | int]


def limiting_candidates(plan: ReactionPlan) -> list[tuple[str | int, float]]:
    """Entities that may bound the reaction, in plan order.

    The starting material comes first, then non-catalyst reagents in display
    order. Entities without a defined, non-negative amount are left out.
    """
    candidates: list[tuple[str | int, float]] = []
    sm_mmol = plan.starting_material.mmol
    if sm_mmol is not None and sm_mmol >= 0:
        candidates.append((LIMITING_SM, sm_mmol))
    for reagent in plan.reagents:
        if reagent.is_catalyst or reagent.mmol is None or reagent.mmol < 0:
            continue
        candidates.append((reagent.id, reagent.mmol))
    return candidates


def find_limiting(candidates: Sequence[tuple[str | int, float]]) -> LimitingKey:
    """Key of the smallest amount; ties go to the first candidate."""
    if not candidates:
        return None
    amounts = np.array([mmol for _, mmol in candidates], dtype=float)
    return candidates[int(np.argmin(amounts))][0]


def resolve_limiting(plan: ReactionPlan) -> LimitingKey:
    """Flag the limiting entity of ``plan`` and clear every other flag."""
    key = find_limiting(limiting_candidates(plan))
    plan.starting_material.is_limiting = key == LIMITING_SM
    for reagent in plan.reagents:
        reagent.is_limiting = key is not None and key == reagent.id
    plan.limiting = key
    return key


def limiting_mmol(plan: ReactionPlan) -> Optional[float]:
    if plan.limiting is None:
        return None
    if plan.limiting == LIMITING_SM:
        return plan.starting_material.mmol
    reagent = plan.find_reagent(plan.limiting)
    return reagent.mmol if reagent is not None else None
