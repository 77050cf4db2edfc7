"""Exception hierarchy for the reaction planner."""

from __future__ import annotations


class ReactionPlannerError(Exception):
    """Base class for all planner errors."""


class PlanDecodeError(ReactionPlannerError):
    """A persisted or imported document could not be parsed."""


class UnknownReagentError(ReactionPlannerError, KeyError):
    def __init__(self, reagent_id: int) -> None:
        super().__init__(f"No reagent with id {reagent_id}")
        self.reagent_id = reagent_id

    def __str__(self) -> str:
        return self.args[0]


class UnknownStepError(ReactionPlannerError, KeyError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f"No procedure step with id {step_id!r}")
        self.step_id = step_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidIdentifierError(ReactionPlannerError, ValueError):
    """An identifier is malformed (e.g. a CAS number with a bad check digit)."""


class CompoundNotFoundError(ReactionPlannerError, LookupError):
    """The lookup service has no record for the identifier."""
