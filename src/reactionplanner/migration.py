"""Upgrade persisted plan documents to the current schema.

Version 1 documents kept free-text ``conditions.notes``; version 2 replaced
them with an ordered list of procedure steps. ``migrate`` is pure: it returns
a new document and leaves its argument alone. Running it on a current
document changes nothing.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, Mapping

from reactionplanner.constants import SCHEMA_VERSION

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def _section(document: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = document.get(key)
    return dict(value) if isinstance(value, Mapping) else {}


def _notes_to_steps(conditions: Dict[str, Any]) -> list[Dict[str, Any]]:
    notes = conditions.get("notes")
    if isinstance(notes, str) and notes.strip():
        logger.warning("Migrating legacy notes into a procedure step")
        return [
            {
                "id": f"step-{uuid.uuid4().hex[:12]}",
                "text": notes,
                "isDone": False,
                "observation": "",
            }
        ]
    return []


def migrate_v1_to_v2(document: Document) -> Document:
    conditions = _section(document, "conditions")
    if not isinstance(conditions.get("steps"), list):
        conditions["steps"] = _notes_to_steps(conditions)
    conditions.pop("notes", None)
    document["conditions"] = conditions
    document["version"] = 2
    return document


MIGRATIONS = {
    1: migrate_v1_to_v2,
}


def document_version(document: Mapping[str, Any]) -> int:
    version = document.get("version")
    if isinstance(version, int) and not isinstance(version, bool) and version > 0:
        return version
    # Unversioned documents predate the steps schema unless they already carry steps.
    conditions = document.get("conditions")
    if isinstance(conditions, Mapping) and isinstance(conditions.get("steps"), list):
        return 2
    return 1


def migrate(document: Mapping[str, Any]) -> Document:
    """Return ``document`` upgraded to ``SCHEMA_VERSION``.

    Missing or wrongly typed top-level sections become empty sections so the
    result always has ``startingMaterial``, ``reagents``, ``product`` and
    ``conditions`` keys.
    """
    result: Document = copy.deepcopy(dict(document))
    version = document_version(result)
    while version < SCHEMA_VERSION:
        result = MIGRATIONS[version](result)
        version += 1
    # A document claiming the current version may still carry stale notes.
    result = migrate_v1_to_v2(result) if "notes" in _section(result, "conditions") else result

    for key in ("startingMaterial", "product", "conditions"):
        result[key] = _section(result, key)
    if not isinstance(result.get("reagents"), list):
        result["reagents"] = []
    if not isinstance(result["conditions"].get("steps"), list):
        result["conditions"]["steps"] = []
    result["version"] = SCHEMA_VERSION
    return result
