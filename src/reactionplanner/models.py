"""Data structures for a single reaction plan.

Input fields hold the text the user entered so that values such as ``"2.0"``
survive a save/load cycle untouched. Derived fields hold floats, or ``None``
when the value is indeterminate.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from reactionplanner.constants import DEFAULT_EQ, DEFAULT_PURITY


class ReagentType(str, Enum):
    PURE_SOLID = "pure-solid"
    PURE_LIQUID = "pure-liquid"
    SOLUTION_MOLARITY = "solution-molarity"
    SOLUTION_DENSITY = "solution-density"


class ReagentRole(str, Enum):
    REACTANT = "reactant"
    REAGENT = "reagent"
    CATALYST = "catalyst"


@dataclass
class StartingMaterial:
    cas: str = ""
    smiles: str = ""
    name: str = ""
    mw: str = ""
    mass: str = ""  # mg
    mmol: Optional[float] = None
    is_limiting: bool = False


@dataclass
class Reagent:
    id: int
    type: ReagentType = ReagentType.PURE_SOLID
    role: ReagentRole = ReagentRole.REAGENT
    name: str = ""
    mw: str = ""
    eq: str = DEFAULT_EQ
    purity: str = DEFAULT_PURITY  # %
    density: str = ""  # g/mL
    molarity: str = ""  # mol/L
    cas: str = ""
    smiles: str = ""
    type_locked: bool = False
    mass: Optional[float] = None  # mg
    volume: Optional[float] = None  # mL
    mmol: Optional[float] = None
    is_limiting: bool = False

    @property
    def is_catalyst(self) -> bool:
        return self.role is ReagentRole.CATALYST


@dataclass
class Product:
    smiles: str = ""
    cas: str = ""
    name: str = ""
    mw: str = ""
    actual_mass: str = ""  # mg
    theoretical_mass: Optional[float] = None  # mg
    percent_yield: Optional[float] = None


@dataclass
class ProcedureStep:
    text: str
    id: str = field(default_factory=lambda: f"step-{uuid.uuid4().hex[:12]}")
    is_done: bool = False
    observation: str = ""


@dataclass
class Conditions:
    solvent_name: str = ""
    solvent_cas: str = ""
    solvent_bp: str = ""
    solvent_conc: str = ""  # mol/L
    temperature: str = ""
    time: str = ""
    solvent_volume: Optional[float] = None  # mL
    steps: list[ProcedureStep] = field(default_factory=list)

    @property
    def progress(self) -> str:
        done = sum(1 for step in self.steps if step.is_done)
        return f"{done}/{len(self.steps)}"


@dataclass
class ReactionPlan:
    starting_material: StartingMaterial = field(default_factory=StartingMaterial)
    reagents: list[Reagent] = field(default_factory=list)
    product: Product = field(default_factory=Product)
    conditions: Conditions = field(default_factory=Conditions)
    reagent_counter: int = 0
    limiting: Optional[str | int] = None

    def next_reagent_id(self) -> int:
        self.reagent_counter += 1
        return self.reagent_counter

    def find_reagent(self, reagent_id: int) -> Optional[Reagent]:
        for reagent in self.reagents:
            if reagent.id == reagent_id:
                return reagent
        return None

    def find_step(self, step_id: str) -> Optional[ProcedureStep]:
        for step in self.conditions.steps:
            if step.id == step_id:
                return step
        return None
