"""Stage records: listing, creation, partial updates and renumbering deletes."""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import UPDATABLE_STAGE_FIELDS, StageCreate, pick_stage_updates
from .schema import DEFAULT_ICON
from .store import Store

logger = logging.getLogger(__name__)


def _stage_row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "number": row["number"],
        "name": row["name"],
        "icon": row["icon"],
        "weeks": row["weeks"],
        "hours": row["hours"],
        "cost": row["cost"],
        "status": row["status"],
        "brief": row["brief"],
        "description": row["description"],
        "progress": row["progress"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _number_sort_key(number: Any) -> Tuple[int, Any]:
    # NULLs first, then numbers, then anything else, as SQLite orders them.
    if number is None:
        return (0, 0)
    if isinstance(number, (int, float)):
        return (1, number)
    return (2, str(number))


def _task_row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "text": row["text"],
        "completed": bool(row["completed"]),
    }


def fetch_tasks_by_stage(
    conn: sqlite3.Connection, stage_ids: Sequence[int], columns: str = "id, stage_id, text, completed, position"
) -> Dict[int, List[sqlite3.Row]]:
    """Fetch the tasks of many stages in one query, grouped by stage id.

    Each group is ordered by ``position`` then ``id``.
    """
    grouped: Dict[int, List[sqlite3.Row]] = {stage_id: [] for stage_id in stage_ids}
    if not stage_ids:
        return grouped
    placeholders = ",".join("?" for _ in stage_ids)
    rows = conn.execute(
        f"SELECT {columns} FROM tasks WHERE stage_id IN ({placeholders})",
        list(stage_ids),
    ).fetchall()
    for row in rows:
        grouped[row["stage_id"]].append(row)
    for tasks in grouped.values():
        tasks.sort(key=lambda r: (r["position"], r["id"]))
    return grouped


def renumber_stages(conn: sqlite3.Connection) -> int:
    """Reassign ``number`` as a dense 1-based rank by prior order.

    Ranks come from a single ordered snapshot of the table, so the updates
    never read numbers they have already rewritten. Returns rows changed.
    """
    rows = conn.execute("SELECT id, number FROM stages ORDER BY number, id").fetchall()
    changes = [(rank, row["id"]) for rank, row in enumerate(rows, start=1) if row["number"] != rank]
    conn.executemany("UPDATE stages SET number = ? WHERE id = ?", changes)
    return len(changes)


class StageRepository:
    def __init__(self, store: Store) -> None:
        self.store = store

    def list_with_tasks(self) -> List[Dict[str, Any]]:
        with self.store.transaction() as conn:
            rows = conn.execute("SELECT * FROM stages ORDER BY number").fetchall()
            tasks = fetch_tasks_by_stage(conn, [row["id"] for row in rows])
        stages = []
        for row in rows:
            stage = _stage_row_to_dict(row)
            stage["tasks"] = [_task_row_to_dict(task) for task in tasks[row["id"]]]
            stages.append(stage)
        stages.sort(key=lambda s: (*_number_sort_key(s["number"]), s["id"]))
        return stages

    def get(self, stage_id: int) -> Optional[Dict[str, Any]]:
        with self.store.transaction() as conn:
            row = conn.execute("SELECT * FROM stages WHERE id = ?", (stage_id,)).fetchone()
            if row is None:
                return None
            tasks = fetch_tasks_by_stage(conn, [stage_id])[stage_id]
        stage = _stage_row_to_dict(row)
        stage["tasks"] = [_task_row_to_dict(task) for task in tasks]
        return stage

    def create(self, fields: StageCreate, task_texts: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        texts = list(task_texts if task_texts is not None else fields.tasks)
        icon = fields.icon or DEFAULT_ICON
        with self.store.transaction() as conn:
            row = conn.execute("SELECT MAX(number) AS max_num FROM stages WHERE typeof(number) IN ('integer', 'real')").fetchone()
            number = (row["max_num"] or 0) + 1
            cursor = conn.execute(
                """
                INSERT INTO stages (number, name, icon, weeks, hours, cost, status, brief, description, progress)
                VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?, 0)
                """,
                (
                    number,
                    fields.name,
                    icon,
                    fields.weeks,
                    fields.hours,
                    fields.cost,
                    fields.brief,
                    fields.description,
                ),
            )
            stage_id = cursor.lastrowid
            conn.executemany(
                "INSERT INTO tasks (stage_id, text, completed, position) VALUES (?, ?, 0, ?)",
                [(stage_id, text, position) for position, text in enumerate(texts)],
            )
        logger.info("Created stage %d (#%d) with %d tasks", stage_id, number, len(texts))
        return self.get(stage_id)

    def update(self, stage_id: int, payload: Dict[str, Any]) -> int:
        """Apply the recognized fields of ``payload``; return rows changed."""
        updates = pick_stage_updates(payload)
        # Column names come from the allowlist only, never from the payload.
        columns = [field for field in UPDATABLE_STAGE_FIELDS if field in updates]
        set_clause = ", ".join(f"{column} = ?" for column in columns)
        values = [updates[column] for column in columns]
        values.append(stage_id)
        with self.store.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE stages SET {set_clause}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                values,
            )
        return cursor.rowcount

    def delete(self, stage_id: int) -> int:
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM tasks WHERE stage_id = ?", (stage_id,))
            cursor = conn.execute("DELETE FROM stages WHERE id = ?", (stage_id,))
            changes = cursor.rowcount
            renumbered = renumber_stages(conn)
        if changes:
            logger.info("Deleted stage %d, renumbered %d stages", stage_id, renumbered)
        return changes
