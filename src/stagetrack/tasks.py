"""Task records scoped to a stage."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .store import Store

logger = logging.getLogger(__name__)


class TaskRepository:
    def __init__(self, store: Store) -> None:
        self.store = store

    def add(self, stage_id: int, text: str) -> Dict[str, Any]:
        """Append a task at the end of the stage's order."""
        with self.store.transaction() as conn:
            row = conn.execute(
                "SELECT MAX(position) AS max_pos FROM tasks WHERE stage_id = ?",
                (stage_id,),
            ).fetchone()
            position = row["max_pos"] + 1 if row["max_pos"] is not None else 0
            cursor = conn.execute(
                "INSERT INTO tasks (stage_id, text, completed, position) VALUES (?, ?, 0, ?)",
                (stage_id, text, position),
            )
        return {"id": cursor.lastrowid, "text": text, "completed": False, "position": position}

    def toggle(self, task_id: int) -> Optional[bool]:
        """Flip ``completed`` and return the stored value, or None for an unknown id."""
        with self.store.transaction() as conn:
            conn.execute("UPDATE tasks SET completed = NOT completed WHERE id = ?", (task_id,))
            row = conn.execute("SELECT completed FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            return None
        return bool(row["completed"])

    def update_text(self, task_id: int, text: str) -> int:
        with self.store.transaction() as conn:
            cursor = conn.execute("UPDATE tasks SET text = ? WHERE id = ?", (text, task_id))
        return cursor.rowcount

    def delete(self, task_id: int) -> int:
        # Sibling positions keep their gaps; ordering only needs relative values.
        with self.store.transaction() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        return cursor.rowcount
