"""Solvent volume for a target reaction concentration."""

from __future__ import annotations

from typing import Optional

from reactionplanner.conversions import volume_from_molarity


def solvent_volume(sm_mmol: Optional[float], concentration: Optional[float]) -> Optional[float]:
    """Volume (mL) that dissolves ``sm_mmol`` at ``concentration`` mol/L."""
    return volume_from_molarity(sm_mmol, concentration)
