"""Reaction planner core package."""

from reactionplanner.engine import recompute, snapshot
from reactionplanner.lookup import CompoundInfo, PubChemLookup, lookup_async
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
from reactionplanner.store import LookupTarget, ReactionPlanStore

__all__ = [
    "CompoundInfo",
    "Conditions",
    "LookupTarget",
    "ProcedureStep",
    "Product",
    "PubChemLookup",
    "ReactionPlan",
    "ReactionPlanStore",
    "Reagent",
    "ReagentRole",
    "ReagentType",
    "StartingMaterial",
    "lookup_async",
    "migrate",
    "recompute",
    "snapshot",
]
