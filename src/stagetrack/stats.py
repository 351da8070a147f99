"""Project-wide statistics."""
from __future__ import annotations

from typing import Any, Dict

from .store import Store

STAGE_STATS_SQL = """
SELECT
    COUNT(*) AS total_stages,
    COALESCE(SUM(CASE WHEN status = 'complete' THEN 1 ELSE 0 END), 0) AS completed,
    COALESCE(SUM(CASE WHEN status = 'progress' THEN 1 ELSE 0 END), 0) AS in_progress,
    COALESCE(SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END), 0) AS pending,
    COALESCE(SUM(CASE WHEN status = 'testing' THEN 1 ELSE 0 END), 0) AS testing,
    COALESCE(AVG(progress), 0) AS avg_progress,
    COALESCE(SUM(hours * progress / 100.0), 0) AS hours_worked,
    COALESCE(SUM(hours), 0) AS total_hours
FROM stages
"""

TASK_STATS_SQL = """
SELECT
    COUNT(*) AS total_tasks,
    COALESCE(SUM(completed), 0) AS completed_tasks
FROM tasks
"""


def compute_stats(store: Store) -> Dict[str, Any]:
    with store.transaction() as conn:
        stage_row = conn.execute(STAGE_STATS_SQL).fetchone()
        task_row = conn.execute(TASK_STATS_SQL).fetchone()
    return {**dict(stage_row), **dict(task_row)}
