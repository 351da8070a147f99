import pytest

from stagetrack.errors import ValidationError
from stagetrack.models import StageCreate
from stagetrack.stages import StageRepository
from stagetrack.stats import compute_stats


def _numbers(repo):
    return [stage["number"] for stage in repo.list_with_tasks()]


def test_create_appends_pending_stage(store):
    repo = StageRepository(store)
    stage = repo.create(StageCreate(name="Docs", weeks="Week 13", hours=10, cost=1000), ["write", "review"])
    assert stage["number"] == 9
    assert stage["status"] == "pending"
    assert stage["progress"] == 0
    assert stage["icon"] == "📋"
    assert [task["text"] for task in stage["tasks"]] == ["write", "review"]
    assert all(task["completed"] is False for task in stage["tasks"])

    with store.transaction() as conn:
        positions = [
            row["position"]
            for row in conn.execute("SELECT position FROM tasks WHERE stage_id = ? ORDER BY id", (stage["id"],))
        ]
    assert positions == [0, 1]


def test_create_on_empty_store_starts_at_one(empty_store):
    stage = StageRepository(empty_store).create(StageCreate(name="First", tasks=["a"]))
    assert stage["number"] == 1
    assert [task["text"] for task in stage["tasks"]] == ["a"]


def test_update_applies_only_present_fields(store):
    repo = StageRepository(store)
    stage = repo.list_with_tasks()[4]
    changes = repo.update(stage["id"], {"status": "progress", "progress": 40, "unknown": "x"})
    assert changes == 1
    updated = repo.get(stage["id"])
    assert updated["status"] == "progress"
    assert updated["progress"] == 40
    assert updated["name"] == stage["name"]


def test_update_without_recognized_fields_fails(store):
    repo = StageRepository(store)
    stage = repo.list_with_tasks()[0]
    with pytest.raises(ValidationError):
        repo.update(stage["id"], {"number": 5, "id": 12})
    with pytest.raises(ValidationError):
        repo.update(stage["id"], {})
    assert repo.get(stage["id"]) == stage


def test_update_unknown_id_reports_zero(store):
    assert StageRepository(store).update(9999, {"name": "ghost"}) == 0


def test_delete_cascades_and_renumbers(store):
    repo = StageRepository(store)
    stages = repo.list_with_tasks()
    third, fourth = stages[2], stages[3]

    assert repo.delete(third["id"]) == 1

    remaining = repo.list_with_tasks()
    assert [stage["number"] for stage in remaining] == list(range(1, 8))
    assert remaining[2]["id"] == fourth["id"]
    assert remaining[2]["number"] == 3
    assert compute_stats(store)["total_stages"] == 7
    with store.transaction() as conn:
        orphans = conn.execute("SELECT COUNT(*) FROM tasks WHERE stage_id = ?", (third["id"],)).fetchone()[0]
    assert orphans == 0


def test_delete_unknown_id_keeps_density(store):
    repo = StageRepository(store)
    assert repo.delete(9999) == 0
    assert _numbers(repo) == list(range(1, 9))


def test_numbers_stay_dense_after_mixed_operations(store):
    repo = StageRepository(store)
    ids = [stage["id"] for stage in repo.list_with_tasks()]
    repo.delete(ids[0])
    created = repo.create(StageCreate(name="New"))
    repo.delete(ids[5])
    repo.delete(ids[6])
    repo.create(StageCreate(name="Newer"))
    repo.delete(created["id"])

    numbers = _numbers(repo)
    assert numbers == list(range(1, len(numbers) + 1))
    assert repo.list_with_tasks()[-1]["name"] == "Newer"


def test_renumber_repairs_imported_gaps(empty_store):
    with empty_store.transaction() as conn:
        for number, name in ((2, "b"), (5, "c"), (9, "d"), (1, "a")):
            conn.execute("INSERT INTO stages (number, name) VALUES (?, ?)", (number, name))
    repo = StageRepository(empty_store)
    repo.delete(repo.list_with_tasks()[1]["id"])
    stages = repo.list_with_tasks()
    assert [(stage["number"], stage["name"]) for stage in stages] == [(1, "a"), (2, "c"), (3, "d")]


def test_tasks_listed_by_position_then_id(empty_store):
    with empty_store.transaction() as conn:
        stage_id = conn.execute("INSERT INTO stages (number, name) VALUES (1, 's')").lastrowid
        conn.executemany(
            "INSERT INTO tasks (stage_id, text, position) VALUES (?, ?, ?)",
            [(stage_id, "third", 5), (stage_id, "first", 0), (stage_id, "second-a", 2), (stage_id, "second-b", 2)],
        )
    stage = StageRepository(empty_store).list_with_tasks()[0]
    assert [task["text"] for task in stage["tasks"]] == ["first", "second-a", "second-b", "third"]
    assert set(stage["tasks"][0]) == {"id", "text", "completed"}


def test_create_returns_stored_stage(store):
    repo = StageRepository(store)
    stage = repo.create(StageCreate(name="Docs", tasks=["write"]))
    assert stage == repo.get(stage["id"])
    assert stage["created_at"] is not None


def test_update_rejects_nested_values_and_keeps_row(store):
    repo = StageRepository(store)
    stage = repo.list_with_tasks()[2]
    with pytest.raises(ValidationError):
        repo.update(stage["id"], {"name": {"x": 1}})
    with pytest.raises(ValidationError):
        repo.update(stage["id"], {"progress": 10, "tags": ["a"], "weeks": [1, 2]})
    assert repo.get(stage["id"]) == stage


def test_update_accepts_any_scalar(store):
    repo = StageRepository(store)
    stage = repo.list_with_tasks()[0]
    assert repo.update(stage["id"], {"progress": 55.5, "hours": 12.25, "brief": None}) == 1
    updated = repo.get(stage["id"])
    assert (updated["progress"], updated["hours"], updated["brief"]) == (55.5, 12.25, None)
