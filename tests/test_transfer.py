import pytest

from stagetrack.errors import StoreError, ValidationError
from stagetrack.models import StageCreate
from stagetrack.schema import DEFAULT_STAGES, ensure_schema
from stagetrack.stages import StageRepository
from stagetrack.store import Store
from stagetrack.tasks import TaskRepository
from stagetrack.transfer import export_all, import_all, reset_to_default


def test_export_strips_ids_and_orders_stages(store):
    document = export_all(store)
    assert [stage["number"] for stage in document] == list(range(1, 9))
    for stage in document:
        assert set(stage) == {
            "number", "name", "icon", "weeks", "hours", "cost",
            "status", "brief", "description", "progress", "tasks",
        }
        for task in stage["tasks"]:
            assert set(task) == {"text", "completed"}
    assert document[0]["tasks"] == DEFAULT_STAGES[0]["tasks"]


def test_export_import_round_trip(store, tmp_path):
    TaskRepository(store).toggle(StageRepository(store).list_with_tasks()[4]["tasks"][0]["id"])
    document = export_all(store)

    other = Store(tmp_path / "other.db")
    try:
        ensure_schema(other)
        assert import_all(other, document) == len(document)
        assert export_all(other) == document
    finally:
        other.close()


def test_import_single_stage(store):
    imported = import_all(
        store,
        [{"number": 1, "name": "A", "hours": 10, "cost": 100, "status": "pending", "progress": 0,
          "tasks": [{"text": "t1", "completed": False}]}],
    )
    assert imported == 1
    stages = StageRepository(store).list_with_tasks()
    assert len(stages) == 1
    assert stages[0]["name"] == "A"
    assert stages[0]["hours"] == 10
    assert [(task["text"], task["completed"]) for task in stages[0]["tasks"]] == [("t1", False)]


def test_import_defaults_missing_progress_and_number(empty_store):
    import_all(empty_store, [{"name": "first"}, {"name": "second", "tasks": []}])
    stages = StageRepository(empty_store).list_with_tasks()
    assert [(stage["number"], stage["name"], stage["progress"]) for stage in stages] == [
        (1, "first", 0),
        (2, "second", 0),
    ]


@pytest.mark.parametrize("document", [None, {"name": "A"}, "stages", [1, 2], [{"tasks": "nope"}]])
def test_import_rejects_bad_shapes_and_keeps_data(store, document):
    before = export_all(store)
    with pytest.raises(ValidationError):
        import_all(store, document)
    assert export_all(store) == before


def test_import_rolls_back_on_store_failure(store):
    before = export_all(store)
    with store.transaction() as conn:
        conn.execute(
            "CREATE TRIGGER reject_bad BEFORE INSERT ON stages WHEN NEW.name = 'bad' "
            "BEGIN SELECT RAISE(ABORT, 'rejected'); END"
        )
    with pytest.raises(StoreError):
        import_all(store, [{"name": "good"}, {"name": "bad"}])
    assert export_all(store) == before


def test_import_empty_list_clears(store):
    assert import_all(store, []) == 0
    assert StageRepository(store).list_with_tasks() == []


def test_reset_converges_to_template(store):
    stages = StageRepository(store)
    tasks = TaskRepository(store)
    listed = stages.list_with_tasks()
    stages.delete(listed[0]["id"])
    stages.update(listed[1]["id"], {"name": "changed", "progress": 5})
    tasks.add(listed[2]["id"], "extra")
    stages.create(StageCreate(name="additional"))

    assert reset_to_default(store) == 8
    assert export_all(store) == DEFAULT_STAGES


def test_reset_from_empty_store(empty_store):
    reset_to_default(empty_store)
    assert len(StageRepository(empty_store).list_with_tasks()) == 8


def test_round_trip_keeps_fractional_progress_and_numeric_weeks(store, tmp_path):
    repo = StageRepository(store)
    stage_id = repo.list_with_tasks()[3]["id"]
    repo.update(stage_id, {"progress": 62.5, "weeks": 3, "cost": 1499.99})
    document = export_all(store)
    assert document[3]["progress"] == 62.5

    other = Store(tmp_path / "other.db")
    try:
        ensure_schema(other)
        assert import_all(other, document) == len(document)
        assert export_all(other) == document
    finally:
        other.close()


def test_import_accepts_scalar_fields_of_any_type(empty_store):
    import_all(empty_store, [{"number": 1, "name": "A", "weeks": 3, "progress": 12.5, "status": None}])
    stage = StageRepository(empty_store).list_with_tasks()[0]
    assert stage["progress"] == 12.5
    assert stage["status"] is None
