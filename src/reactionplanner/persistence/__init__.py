"""Persistence helpers for the reaction planner."""

from reactionplanner.persistence.sqlite_store import (
    connect,
    delete_document,
    ensure_schema,
    load_document,
    save_document,
)

__all__ = [
    "connect",
    "delete_document",
    "ensure_schema",
    "load_document",
    "save_document",
]
