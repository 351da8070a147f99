"""Whole-dataset export, import and reset."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .models import parse_stage_documents
from .schema import insert_stages, seed_defaults
from .stages import fetch_tasks_by_stage
from .store import Store

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "project_stages.json"
RESET_MESSAGE = "Data reset to default"

EXPORT_FIELDS = (
    "number",
    "name",
    "icon",
    "weeks",
    "hours",
    "cost",
    "status",
    "brief",
    "description",
    "progress",
)


def _clear_all(conn) -> None:
    conn.execute("DELETE FROM tasks")
    conn.execute("DELETE FROM stages")


def export_all(store: Store) -> List[Dict[str, Any]]:
    """Return every stage with its tasks, without ids or timestamps."""
    with store.transaction() as conn:
        rows = conn.execute("SELECT * FROM stages ORDER BY number, id").fetchall()
        tasks = fetch_tasks_by_stage(conn, [row["id"] for row in rows])
    document = []
    for row in rows:
        stage = {field: row[field] for field in EXPORT_FIELDS}
        stage["tasks"] = [
            {"text": task["text"], "completed": bool(task["completed"])}
            for task in tasks[row["id"]]
        ]
        document.append(stage)
    return document


def import_all(store: Store, document: Any) -> int:
    """Replace all stages and tasks with ``document`` in one transaction."""
    stages = [stage.model_dump() for stage in parse_stage_documents(document)]
    with store.transaction() as conn:
        _clear_all(conn)
        imported = insert_stages(conn, stages)
    logger.info("Imported %d stages", imported)
    return imported


def reset_to_default(store: Store) -> int:
    """Clear everything and reseed the default template atomically."""
    with store.transaction() as conn:
        _clear_all(conn)
        seeded = seed_defaults(conn)
    logger.info("Reset database to %d default stages", seeded)
    return seeded
