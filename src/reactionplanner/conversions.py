"""Unit conversions between mass, amount, volume and concentration.

All functions are pure and never raise. Units follow bench conventions:
masses in mg, amounts in mmol, volumes in mL, molecular weights in g/mol,
densities in g/mL and molarities in mol/L (so mmol / (mol/L) gives mL).

Any operand that is missing, non-numeric or non-finite, and any denominator
that is zero or negative, makes the result ``None`` (the empty value).
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np

Number = Union[float, int]
Operand = Union[str, float, int, None]


def parse_number(value: Operand) -> Optional[float]:
    """Interpret user input as a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(number):
        return None
    return number


def parse_purity(value: Operand) -> Optional[float]:
    """Purity in percent; a blank field means 100 %."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 100.0
    return parse_number(value)


def finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not np.isfinite(value):
        return None
    return float(value)


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def starting_material_mmol(mass: Optional[float], mw: Optional[float]) -> Optional[float]:
    """mmol = mass (mg) / MW (g/mol)."""
    if mass is None or not _positive(mw):
        return None
    return finite_or_none(mass / mw)


def reagent_mmol(sm_mmol: Optional[float], eq: Optional[float]) -> Optional[float]:
    if sm_mmol is None or eq is None:
        return None
    return finite_or_none(sm_mmol * eq)


def theoretical_mass(sm_mmol: Optional[float], eq: Optional[float], mw: Optional[float]) -> Optional[float]:
    """Mass (mg) of pure compound needed for ``eq`` equivalents."""
    amount = reagent_mmol(sm_mmol, eq)
    if amount is None or mw is None:
        return None
    return finite_or_none(amount * mw)


def purity_corrected_mass(mass: Optional[float], purity: Optional[float]) -> Optional[float]:
    """Real mass to weigh out when only ``purity`` % is active compound."""
    if mass is None or not _positive(purity):
        return None
    return finite_or_none(mass / (purity / 100.0))


def volume_from_mass(mass: Optional[float], density: Optional[float]) -> Optional[float]:
    """Volume (mL) of ``mass`` mg of a liquid with ``density`` g/mL."""
    if mass is None or not _positive(density):
        return None
    return finite_or_none(mass / density / 1000.0)


def volume_from_molarity(mmol: Optional[float], molarity: Optional[float]) -> Optional[float]:
    """Volume (mL) of a ``molarity`` mol/L solution holding ``mmol``."""
    if mmol is None or not _positive(molarity):
        return None
    return finite_or_none(mmol / molarity)


def solid_mass(sm_mmol, eq, mw, purity) -> Optional[float]:
    return purity_corrected_mass(theoretical_mass(sm_mmol, eq, mw), purity)


def liquid_volume(sm_mmol, eq, mw, purity, density) -> Optional[float]:
    return volume_from_mass(solid_mass(sm_mmol, eq, mw, purity), density)


def density_solution_volume(sm_mmol, eq, mw, density) -> Optional[float]:
    """Volume of a solution given as g/mL of active ingredient."""
    return volume_from_mass(theoretical_mass(sm_mmol, eq, mw), density)


def format_fixed(value: Optional[float], decimals: int) -> str:
    """Fixed-point text for display; ``""`` when indeterminate."""
    value = finite_or_none(value)
    if value is None:
        return ""
    text = f"{value:.{decimals}f}"
    # avoid "-0.000" for tiny negative results
    if float(text) == 0:
        text = f"{0.0:.{decimals}f}"
    return text


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    text = format_fixed(value, decimals)
    return f"{text}%" if text else ""
