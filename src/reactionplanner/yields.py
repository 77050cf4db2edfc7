"""Theoretical and percent yield."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from reactionplanner.constants import EXCELLENT_YIELD, GOOD_YIELD
from reactionplanner.conversions import finite_or_none


class YieldTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"


def theoretical_yield(limiting_mmol: Optional[float], product_mw: Optional[float]) -> Optional[float]:
    """Maximum product mass (mg) from the limiting amount."""
    if limiting_mmol is None or product_mw is None:
        return None
    return finite_or_none(limiting_mmol * product_mw)


def percent_yield(actual_mass: Optional[float], theoretical_mass: Optional[float]) -> Optional[float]:
    if actual_mass is None or theoretical_mass is None or theoretical_mass <= 0:
        return None
    return finite_or_none(actual_mass / theoretical_mass * 100.0)


def classify_yield(percent: Optional[float]) -> Optional[YieldTier]:
    """Tier used for display styling; both thresholds are inclusive lower bounds."""
    if percent is None:
        return None
    if percent >= EXCELLENT_YIELD:
        return YieldTier.EXCELLENT
    if percent >= GOOD_YIELD:
        return YieldTier.GOOD
    return YieldTier.POOR
