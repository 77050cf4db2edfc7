"""The reaction plan store.

``ReactionPlanStore`` owns the one mutable ``ReactionPlan``. Every mutating
method applies its edit, recomputes all derived values, notifies listeners
and schedules a debounced write of the plan to SQLite. ``flush`` performs a
pending write immediately; tests and short-lived commands rely on it rather
than on wall-clock timing.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from reactionplanner import codec
from reactionplanner.config import Settings
from reactionplanner.constants import DEFAULT_DEBOUNCE_MS, STORAGE_KEY
from reactionplanner.engine import recompute, snapshot
from reactionplanner.errors import PlanDecodeError, UnknownReagentError, UnknownStepError
from reactionplanner.lookup import CompoundInfo
from reactionplanner.models import (
    ProcedureStep,
    ReactionPlan,
    Reagent,
    ReagentRole,
    ReagentType,
)
from reactionplanner.persistence import sqlite_store
from reactionplanner.reagent_types import fields_for, switch_type

logger = logging.getLogger(__name__)

Listener = Callable[[ReactionPlan], None]

STARTING_MATERIAL_FIELDS = ("cas", "smiles", "name", "mw", "mass")
REAGENT_FIELDS = ("mw", "eq", "purity", "density", "molarity", "cas", "smiles", "name")
PRODUCT_FIELDS = ("smiles", "cas", "name", "mw", "actual_mass")
CONDITION_FIELDS = (
    "solvent_name",
    "solvent_cas",
    "solvent_bp",
    "solvent_conc",
    "temperature",
    "time",
)


class LookupTarget(str, Enum):
    STARTING_MATERIAL = "sm"
    REAGENT = "reagent"
    PRODUCT = "product"
    SOLVENT = "solvent"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _check_fields(fields: Dict[str, Any], allowed: tuple[str, ...], entity: str) -> None:
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValueError(f"Unknown {entity} field(s): {', '.join(unknown)}")


def _check_applicable(reagent_type: ReagentType, fields: Dict[str, Any]) -> None:
    """Type-specific inputs may only be filled for a type that uses them."""
    applicable = fields_for(reagent_type)
    for name, value in fields.items():
        if _as_text(value) and not applicable.applies(name):
            raise ValueError(f"{name} does not apply to a {reagent_type.value} reagent")


def _assign(entity: Any, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        setattr(entity, name, _as_text(value))


class ReactionPlanStore:
    def __init__(
        self,
        connection: sqlite3.Connection | None = None,
        key: str = STORAGE_KEY,
        debounce_seconds: float = DEFAULT_DEBOUNCE_MS / 1000.0,
    ) -> None:
        self._connection = connection
        self._key = key
        self._debounce_seconds = debounce_seconds
        self._lock = threading.RLock()
        self._timer: threading.Timer | None = None
        self._dirty = False
        self._listeners: List[Listener] = []
        self._plan = recompute(ReactionPlan())
        self.ready = False

    @classmethod
    def open(cls, settings: Settings) -> "ReactionPlanStore":
        """Connect to the configured database and load the saved plan."""
        connection = sqlite_store.connect(settings.database)
        sqlite_store.ensure_schema(connection)
        store = cls(connection, key=settings.storage_key, debounce_seconds=settings.debounce_seconds)
        store.load()
        return store

    # ------------------------------------------------------------------
    # read access

    @property
    def plan(self) -> ReactionPlan:
        return self._plan

    @property
    def has_pending_write(self) -> bool:
        return self._dirty

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return snapshot(self._plan)

    def reagent(self, reagent_id: int) -> Reagent:
        reagent = self._plan.find_reagent(reagent_id)
        if reagent is None:
            raise UnknownReagentError(reagent_id)
        return reagent

    def step(self, step_id: str) -> ProcedureStep:
        step = self._plan.find_step(step_id)
        if step is None:
            raise UnknownStepError(step_id)
        return step

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # loading and persistence

    def load(self) -> bool:
        """Hydrate from the persisted copy; returns whether one was found.

        An unreadable copy is logged and left in place, and the store starts
        from an empty plan.
        """
        payload = None
        if self._connection is not None:
            payload = sqlite_store.load_document(self._connection, self._key)
        with self._lock:
            if payload is None:
                self._plan = recompute(ReactionPlan())
            else:
                try:
                    self._plan = recompute(codec.loads(payload))
                except PlanDecodeError as exc:
                    logger.error("Ignoring unreadable saved plan %r: %s", self._key, exc)
                    self._plan = recompute(ReactionPlan())
                    payload = None
                else:
                    logger.info("Loaded plan %r with %d reagent(s)", self._key, len(self._plan.reagents))
            self.ready = True
        self._notify()
        return payload is not None

    def flush(self) -> bool:
        """Write a pending change now; returns whether anything was written."""
        with self._lock:
            self._cancel_timer()
            if not self._dirty:
                return False
            self._dirty = False
            if self._connection is None:
                return False
            sqlite_store.save_document(self._connection, self._key, codec.dumps(self._plan))
            logger.info("Persisted plan %r", self._key)
            return True

    def close(self) -> None:
        self.flush()
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_persist(self) -> None:
        self._dirty = True
        self._cancel_timer()
        if self._connection is None or self._debounce_seconds <= 0:
            return
        self._timer = threading.Timer(self._debounce_seconds, self.flush)
        self._timer.daemon = True
        self._timer.start()
        logger.debug("Write scheduled in %.3f s", self._debounce_seconds)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._plan)

    @contextmanager
    def _mutation(self) -> Iterator[ReactionPlan]:
        with self._lock:
            yield self._plan
            recompute(self._plan)
            self._schedule_persist()
        self._notify()

    # ------------------------------------------------------------------
    # starting material, product, conditions

    def update_starting_material(self, **fields: Any) -> None:
        _check_fields(fields, STARTING_MATERIAL_FIELDS, "starting material")
        with self._mutation() as plan:
            _assign(plan.starting_material, fields)

    def update_product(self, **fields: Any) -> None:
        _check_fields(fields, PRODUCT_FIELDS, "product")
        with self._mutation() as plan:
            _assign(plan.product, fields)

    def update_conditions(self, **fields: Any) -> None:
        _check_fields(fields, CONDITION_FIELDS, "conditions")
        with self._mutation() as plan:
            _assign(plan.conditions, fields)

    # ------------------------------------------------------------------
    # reagents

    def add_reagent(
        self,
        type: ReagentType | str | None = None,
        role: ReagentRole | str = ReagentRole.REAGENT,
        **fields: Any,
    ) -> Reagent:
        """Append a reagent; an explicit ``type`` counts as the user's choice."""
        _check_fields(fields, REAGENT_FIELDS, "reagent")
        role = ReagentRole(role)
        reagent_type = ReagentType(type) if type is not None else ReagentType.PURE_SOLID
        _check_applicable(reagent_type, fields)
        with self._mutation() as plan:
            reagent = Reagent(id=plan.next_reagent_id(), role=role)
            if type is not None:
                switch_type(reagent, reagent_type)
                reagent.type_locked = True
            _assign(reagent, fields)
            plan.reagents.append(reagent)
        logger.info("Added reagent %d (%s)", reagent.id, reagent.type.value)
        return reagent

    def update_reagent(self, reagent_id: int, role: ReagentRole | str | None = None, **fields: Any) -> Reagent:
        _check_fields(fields, REAGENT_FIELDS, "reagent")
        reagent = self.reagent(reagent_id)
        new_role = ReagentRole(role) if role is not None else None
        _check_applicable(reagent.type, fields)
        with self._mutation():
            _assign(reagent, fields)
            if new_role is not None:
                reagent.role = new_role
        return reagent

    def set_reagent_type(self, reagent_id: int, reagent_type: ReagentType | str) -> Reagent:
        """User selection of a reagent type; later lookups will not override it."""
        reagent = self.reagent(reagent_id)
        reagent_type = ReagentType(reagent_type)
        with self._mutation():
            switch_type(reagent, reagent_type)
            reagent.type_locked = True
        return reagent

    def remove_reagent(self, reagent_id: int) -> None:
        reagent = self.reagent(reagent_id)
        with self._mutation() as plan:
            plan.reagents.remove(reagent)
        logger.info("Removed reagent %d", reagent_id)

    # ------------------------------------------------------------------
    # procedure steps

    def add_step(self, text: str) -> Optional[ProcedureStep]:
        """Append a step; blank text is ignored and returns ``None``."""
        text = (text or "").strip()
        if not text:
            return None
        step = ProcedureStep(text=text)
        with self._mutation() as plan:
            plan.conditions.steps.append(step)
        return step

    def toggle_step(self, step_id: str) -> bool:
        step = self.step(step_id)
        with self._mutation():
            step.is_done = not step.is_done
        return step.is_done

    def set_observation(self, step_id: str, observation: str) -> None:
        step = self.step(step_id)
        with self._mutation():
            step.observation = observation or ""

    def remove_step(self, step_id: str) -> None:
        step = self.step(step_id)
        with self._mutation() as plan:
            plan.conditions.steps.remove(step)

    # ------------------------------------------------------------------
    # compound lookup

    def apply_lookup(
        self,
        target: LookupTarget | str,
        info: CompoundInfo,
        reagent_id: int | None = None,
    ) -> List[str]:
        """Write a lookup result into one entity; returns user-facing warnings."""
        target = LookupTarget(target)
        warnings: List[str] = []
        reagent = None
        if target is LookupTarget.REAGENT:
            if reagent_id is None:
                raise ValueError("A reagent id is required for a reagent lookup")
            reagent = self.reagent(reagent_id)

        with self._mutation() as plan:
            if target is LookupTarget.STARTING_MATERIAL:
                self._fill_identity(plan.starting_material, info)
            elif target is LookupTarget.PRODUCT:
                self._fill_identity(plan.product, info)
            elif target is LookupTarget.SOLVENT:
                plan.conditions.solvent_name = info.name or plan.conditions.solvent_name
                plan.conditions.solvent_cas = info.cas or plan.conditions.solvent_cas
                if info.boiling_point is not None:
                    plan.conditions.solvent_bp = f"{info.boiling_point:g}"
            else:
                self._fill_identity(reagent, info)
                warnings.extend(self._apply_physical_state(reagent, info))

        for warning in warnings:
            logger.warning(warning)
        logger.info("Applied lookup for %s (%s)", target.value, info.name or info.cas)
        return warnings

    @staticmethod
    def _fill_identity(entity: Any, info: CompoundInfo) -> None:
        entity.mw = _as_text(info.mw)
        if info.smiles:
            entity.smiles = info.smiles
        if info.name:
            entity.name = info.name
        if info.cas:
            entity.cas = info.cas

    @staticmethod
    def _apply_physical_state(reagent: Reagent, info: CompoundInfo) -> List[str]:
        label = info.name or info.cas or f"reagent {reagent.id}"
        if not info.has_physical_state:
            return [f"No physical state data for {label}; reagent type left unchanged"]
        if info.is_liquid() and not reagent.type_locked:
            switch_type(reagent, ReagentType.PURE_LIQUID)
        if info.density is not None and fields_for(reagent.type).applies("density"):
            reagent.density = f"{info.density:g}"
        return []

    # ------------------------------------------------------------------
    # whole-plan operations

    def replace(self, plan: ReactionPlan) -> None:
        with self._lock:
            self._plan = plan
            recompute(self._plan)
            self._schedule_persist()
        self._notify()

    def load_json(self, text: str | bytes) -> None:
        """Replace the plan from JSON text; bad JSON leaves the store untouched."""
        plan = codec.loads(text)
        self.replace(plan)

    def import_plan(self, path: str | Path) -> None:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise PlanDecodeError(f"Not a valid plan file: {exc}") from exc
        self.load_json(text)
        logger.info("Imported plan from %s", path)

    def export_plan(self, path: str | Path) -> Path:
        path = Path(path)
        with self._lock:
            text = codec.dumps(self._plan)
        path.write_text(text, encoding="utf-8")
        logger.info("Exported plan to %s", path)
        return path

    def clear(self, confirm: Callable[[], bool]) -> bool:
        """Reset to an empty plan and purge the saved copy, if ``confirm()`` agrees."""
        if not confirm():
            return False
        with self._lock:
            self._cancel_timer()
            self._dirty = False
            if self._connection is not None:
                sqlite_store.delete_document(self._connection, self._key)
            self._plan = recompute(ReactionPlan())
        logger.info("Cleared plan %r", self._key)
        self._notify()
        return True
