"""JSON codec for reaction plans.

Decoding is lenient: absent or wrongly typed fields take their defaults and
derived values stored in the document are ignored, since the store
recomputes them. Only text that is not JSON, or JSON whose root is not an
object, is rejected.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping

from reactionplanner.constants import DEFAULT_EQ, DEFAULT_PURITY, SCHEMA_VERSION
from reactionplanner.errors import PlanDecodeError
from reactionplanner.migration import migrate
from reactionplanner.models import (
    Conditions,
    ProcedureStep,
    Product,
    ReactionPlan,
    Reagent,
    ReagentRole,
    ReagentType,
    StartingMaterial,
)

logger = logging.getLogger(__name__)


def plan_to_document(plan: ReactionPlan) -> Dict[str, Any]:
    sm = plan.starting_material
    product = plan.product
    conditions = plan.conditions
    return {
        "version": SCHEMA_VERSION,
        "startingMaterial": {
            "cas": sm.cas,
            "smiles": sm.smiles,
            "name": sm.name,
            "mw": sm.mw,
            "mass": sm.mass,
            "mmol": sm.mmol,
        },
        "reagents": [
            {
                "id": reagent.id,
                "type": reagent.type.value,
                "role": reagent.role.value,
                "name": reagent.name,
                "mw": reagent.mw,
                "eq": reagent.eq,
                "purity": reagent.purity,
                "density": reagent.density,
                "molarity": reagent.molarity,
                "cas": reagent.cas,
                "smiles": reagent.smiles,
                "typeLocked": reagent.type_locked,
                "mass": reagent.mass,
                "volume": reagent.volume,
                "mmol": reagent.mmol,
                "isLimiting": reagent.is_limiting,
            }
            for reagent in plan.reagents
        ],
        "reagentCounter": plan.reagent_counter,
        "limitingReagent": plan.limiting,
        "product": {
            "smiles": product.smiles,
            "cas": product.cas,
            "name": product.name,
            "mw": product.mw,
            "actualMass": product.actual_mass,
            "theoreticalMass": product.theoretical_mass,
            "percentYield": product.percent_yield,
        },
        "conditions": {
            "solventName": conditions.solvent_name,
            "solventCAS": conditions.solvent_cas,
            "solventBP": conditions.solvent_bp,
            "solventConc": conditions.solvent_conc,
            "solventVolume": conditions.solvent_volume,
            "temperature": conditions.temperature,
            "time": conditions.time,
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
    }


def _text(section: Mapping[str, Any], key: str, default: str = "") -> str:
    """Input field as text; numbers keep their JSON spelling."""
    value = section.get(key)
    if value is None or isinstance(value, (dict, list)):
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
        return default


def _int_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _decode_reagents(items: list, counter: int) -> tuple[list[Reagent], int]:
    reagents: list[Reagent] = []
    seen: set[int] = set()
    pending: list[tuple[Reagent, Mapping[str, Any]]] = []
    for item in items:
        if not isinstance(item, Mapping):
            logger.warning("Skipping malformed reagent entry %r", item)
            continue
        reagent_id = _int_id(item.get("id"))
        reagent = Reagent(
            id=reagent_id if reagent_id is not None and reagent_id not in seen else 0,
            type=_enum(ReagentType, item.get("type", ReagentType.PURE_SOLID.value), ReagentType.PURE_SOLID),
            role=_enum(ReagentRole, item.get("role", ReagentRole.REAGENT.value), ReagentRole.REAGENT),
            name=_text(item, "name"),
            mw=_text(item, "mw"),
            eq=_text(item, "eq", DEFAULT_EQ),
            purity=_text(item, "purity", DEFAULT_PURITY),
            density=_text(item, "density"),
            molarity=_text(item, "molarity"),
            cas=_text(item, "cas"),
            smiles=_text(item, "smiles"),
            type_locked=item.get("typeLocked") is True,
        )
        if reagent.id:
            seen.add(reagent.id)
        else:
            pending.append((reagent, item))
        reagents.append(reagent)

    counter = max([counter, *seen]) if seen else counter
    for reagent, item in pending:
        counter += 1
        logger.warning("Reassigning reagent id %r to %d", item.get("id"), counter)
        reagent.id = counter
    return reagents, counter


def _decode_steps(items: list) -> list[ProcedureStep]:
    steps: list[ProcedureStep] = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, Mapping):
            continue
        text = _text(item, "text")
        if not text.strip():
            continue
        step = ProcedureStep(
            text=text,
            is_done=item.get("isDone") is True,
            observation=_text(item, "observation"),
        )
        step_id = _text(item, "id")
        if step_id and step_id not in seen:
            step.id = step_id
        seen.add(step.id)
        steps.append(step)
    return steps


def plan_from_document(document: Mapping[str, Any]) -> ReactionPlan:
    """Build a plan from a parsed document, migrating it first."""
    document = migrate(document)
    sm = document["startingMaterial"]
    product = document["product"]
    conditions = document["conditions"]

    counter = _int_id(document.get("reagentCounter")) or 0
    reagents, counter = _decode_reagents(document["reagents"], counter)

    return ReactionPlan(
        starting_material=StartingMaterial(
            cas=_text(sm, "cas"),
            smiles=_text(sm, "smiles"),
            name=_text(sm, "name"),
            mw=_text(sm, "mw"),
            mass=_text(sm, "mass"),
        ),
        reagents=reagents,
        product=Product(
            smiles=_text(product, "smiles"),
            cas=_text(product, "cas"),
            name=_text(product, "name"),
            mw=_text(product, "mw"),
            actual_mass=_text(product, "actualMass"),
        ),
        conditions=Conditions(
            solvent_name=_text(conditions, "solventName"),
            solvent_cas=_text(conditions, "solventCAS"),
            solvent_bp=_text(conditions, "solventBP"),
            solvent_conc=_text(conditions, "solventConc"),
            temperature=_text(conditions, "temperature"),
            time=_text(conditions, "time"),
            steps=_decode_steps(conditions["steps"]),
        ),
        reagent_counter=counter,
    )


def dumps(plan: ReactionPlan) -> str:
    return json.dumps(plan_to_document(plan), ensure_ascii=False, indent=2)


def loads(text: str | bytes) -> ReactionPlan:
    """Parse JSON text into a plan; raises ``PlanDecodeError`` on bad input."""
    try:
        document = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise PlanDecodeError(f"Not a valid plan file: {exc}") from exc
    if not isinstance(document, Mapping):
        raise PlanDecodeError("Not a valid plan file: the top level must be a JSON object")
    return plan_from_document(document)
