"""Recompute cascade over a whole reaction plan, and the display snapshot.

``recompute`` runs the conversions for every entity, then limiting reagent
resolution, then yield and solvent volume. It mutates only derived fields.
``snapshot`` turns the derived values into the fixed-precision strings shown
to the user; rounding happens here and nowhere else.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from reactionplanner import conversions as conv
from reactionplanner.constants import (
    MASS_DECIMALS,
    REAGENT_MMOL_DECIMALS,
    SM_MMOL_DECIMALS,
    VOLUME_DECIMALS,
    YIELD_DECIMALS,
)
from reactionplanner.limiting import limiting_mmol, resolve_limiting
from reactionplanner.models import ReactionPlan, Reagent, ReagentType
from reactionplanner.reagent_types import fields_for
from reactionplanner.smiles import has_stereo
from reactionplanner.solvent import solvent_volume
from reactionplanner.yields import classify_yield, percent_yield, theoretical_yield

logger = logging.getLogger(__name__)


def compute_reagent(reagent: Reagent, sm_mmol: Optional[float]) -> Reagent:
    """Fill mass, volume and mmol of ``reagent`` for its current type."""
    eq = conv.parse_number(reagent.eq)
    mw = conv.parse_number(reagent.mw)
    mmol = conv.reagent_mmol(sm_mmol, eq)
    mass: Optional[float] = None
    volume: Optional[float] = None

    if reagent.type is ReagentType.PURE_SOLID:
        mass = conv.solid_mass(sm_mmol, eq, mw, conv.parse_purity(reagent.purity))
    elif reagent.type is ReagentType.PURE_LIQUID:
        volume = conv.liquid_volume(
            sm_mmol,
            eq,
            mw,
            conv.parse_purity(reagent.purity),
            conv.parse_number(reagent.density),
        )
    elif reagent.type is ReagentType.SOLUTION_MOLARITY:
        volume = conv.volume_from_molarity(mmol, conv.parse_number(reagent.molarity))
    elif reagent.type is ReagentType.SOLUTION_DENSITY:
        volume = conv.density_solution_volume(sm_mmol, eq, mw, conv.parse_number(reagent.density))
    else:
        raise ValueError(f"Unknown reagent type: {reagent.type}")

    reagent.mmol = mmol
    reagent.mass = mass
    reagent.volume = volume
    return reagent


def recompute(plan: ReactionPlan) -> ReactionPlan:
    sm = plan.starting_material
    sm.mmol = conv.starting_material_mmol(conv.parse_number(sm.mass), conv.parse_number(sm.mw))

    for reagent in plan.reagents:
        compute_reagent(reagent, sm.mmol)

    resolve_limiting(plan)

    product = plan.product
    product.theoretical_mass = theoretical_yield(limiting_mmol(plan), conv.parse_number(product.mw))
    product.percent_yield = percent_yield(conv.parse_number(product.actual_mass), product.theoretical_mass)

    conditions = plan.conditions
    conditions.solvent_volume = solvent_volume(sm.mmol, conv.parse_number(conditions.solvent_conc))

    logger.debug(
        "Recomputed plan: sm_mmol=%s limiting=%s theoretical=%s",
        sm.mmol,
        plan.limiting,
        product.theoretical_mass,
    )
    return plan


def _reagent_view(reagent: Reagent) -> Dict[str, Any]:
    fields = fields_for(reagent.type)
    return {
        "id": reagent.id,
        "type": reagent.type.value,
        "role": reagent.role.value,
        "name": reagent.name,
        "cas": reagent.cas,
        "smiles": reagent.smiles,
        "mw": reagent.mw,
        "eq": reagent.eq,
        "purity": reagent.purity,
        "density": reagent.density,
        "molarity": reagent.molarity,
        "mmol": conv.format_fixed(reagent.mmol, REAGENT_MMOL_DECIMALS),
        "mass": conv.format_fixed(reagent.mass, MASS_DECIMALS),
        "volume": conv.format_fixed(reagent.volume, VOLUME_DECIMALS),
        "isLimiting": reagent.is_limiting,
        "activeFields": list(fields.inputs + fields.outputs),
        "stereoWarning": has_stereo(reagent.smiles),
    }


def snapshot(plan: ReactionPlan) -> Dict[str, Any]:
    """Display values for every entity of an already recomputed plan."""
    sm = plan.starting_material
    product = plan.product
    conditions = plan.conditions
    tier = classify_yield(product.percent_yield)
    return {
        "startingMaterial": {
            "name": sm.name,
            "cas": sm.cas,
            "smiles": sm.smiles,
            "mw": sm.mw,
            "mass": sm.mass,
            "mmol": conv.format_fixed(sm.mmol, SM_MMOL_DECIMALS),
            "isLimiting": sm.is_limiting,
            "stereoWarning": has_stereo(sm.smiles),
        },
        "reagents": [_reagent_view(reagent) for reagent in plan.reagents],
        "product": {
            "name": product.name,
            "cas": product.cas,
            "smiles": product.smiles,
            "mw": product.mw,
            "actualMass": product.actual_mass,
            "theoreticalMass": conv.format_fixed(product.theoretical_mass, MASS_DECIMALS),
            "percentYield": conv.format_percent(product.percent_yield, YIELD_DECIMALS),
            "yieldTier": tier.value if tier is not None else "",
            "stereoWarning": has_stereo(product.smiles),
        },
        "conditions": {
            "solventName": conditions.solvent_name,
            "solventCAS": conditions.solvent_cas,
            "solventBP": conditions.solvent_bp,
            "solventConc": conditions.solvent_conc,
            "solventVolume": conv.format_fixed(conditions.solvent_volume, VOLUME_DECIMALS),
            "temperature": conditions.temperature,
            "time": conditions.time,
            "progress": conditions.progress,
            "steps": [
                {
                    "id": step.id,
                    "text": step.text,
                    "isDone": step.is_done,
                    "observation": step.observation,
                }
                for step in conditions.steps
            ],
        },
        "limitingReagent": plan.limiting,
    }
