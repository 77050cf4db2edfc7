"""Which fields apply to each reagent representation, and type transitions."""

from __future__ import annotations

from dataclasses import dataclass

from reactionplanner.models import Reagent, ReagentType

SHARED_INPUTS = ("mw", "eq", "purity", "cas", "smiles", "name")
DERIVED_FIELDS = ("mass", "volume", "mmol")


@dataclass(frozen=True)
class TypeFields:
    """Input and output fields that are meaningful for one reagent type."""

    inputs: tuple[str, ...]
    outputs: tuple[str, ...]

    def applies(self, field_name: str) -> bool:
        return field_name in self.inputs or field_name in self.outputs


FIELDS_BY_TYPE: dict[ReagentType, TypeFields] = {
    ReagentType.PURE_SOLID: TypeFields(
        inputs=SHARED_INPUTS,
        outputs=("mass", "mmol"),
    ),
    ReagentType.PURE_LIQUID: TypeFields(
        inputs=SHARED_INPUTS + ("density",),
        outputs=("volume", "mmol"),
    ),
    ReagentType.SOLUTION_MOLARITY: TypeFields(
        inputs=SHARED_INPUTS + ("molarity",),
        outputs=("volume", "mmol"),
    ),
    ReagentType.SOLUTION_DENSITY: TypeFields(
        inputs=SHARED_INPUTS + ("density",),
        outputs=("volume", "mmol"),
    ),
}

# Inputs owned by particular types; anything else survives every transition.
TYPE_SPECIFIC_INPUTS = ("density", "molarity")


def fields_for(reagent_type: ReagentType | str) -> TypeFields:
    return FIELDS_BY_TYPE[ReagentType(reagent_type)]


def switch_type(reagent: Reagent, new_type: ReagentType | str) -> Reagent:
    """Move ``reagent`` to ``new_type`` in place.

    Type-specific inputs (density, molarity) and every derived value are
    reset, so after any chain of transitions the reagent holds only the
    shared inputs plus whatever is entered for the final type. Selecting the
    current type again is a no-op. The caller recomputes the plan afterwards.
    """
    new_type = ReagentType(new_type)
    if reagent.type is new_type:
        return reagent
    for name in TYPE_SPECIFIC_INPUTS:
        setattr(reagent, name, "")
    reagent.type = new_type
    reagent.mass = None
    reagent.volume = None
    reagent.mmol = None
    return reagent
