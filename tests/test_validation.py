"""Tests du moteur de validation."""

import pytest

from alchimiste.config import Config
from alchimiste.schema import Client, Task, Worker, entity_from_record, entity_to_record
from alchimiste.validation import ValidationEngine, quality_score, validate_dataset


@pytest.fixture
def engine() -> ValidationEngine:
    return ValidationEngine(Config())


def test_clean_dataset_no_issues(engine: ValidationEngine) -> None:
    clients = [Client("C001", "Acme", 3, ["T001"])]
    workers = [Worker("W001", "Alice", ["python"], [1, 2], 1)]
    tasks = [Task("T001", "Migration", duration=1, required_skills=["python"], preferred_phases=[1])]
    report = engine.validate(clients, workers, tasks)
    assert report.issues == []
    assert report.score == 100.0


def test_duplicate_ids_one_error(engine: ValidationEngine) -> None:
    clients = [Client("C001", "Acme"), Client("C001", "Globex")]
    report = engine.validate(clients=clients)
    assert len(report.errors) == 1
    error = report.errors[0]
    assert error.field == "ClientID"
    assert error.row == 1
    assert error.entity_id == "C001"


def test_duplicate_ids_n_minus_one(engine: ValidationEngine) -> None:
    tasks = [Task("T001", "a"), Task("T002", "b"), Task("T001", "c"), Task("T001", "d")]
    issues = engine.check_duplicates("task", tasks)
    assert [i.row for i in issues] == [2, 3]


def test_dangling_task_reference_warning(engine: ValidationEngine) -> None:
    clients = [Client("C001", "Acme", requested_task_ids=["T999"])]
    tasks = [Task("T001", "Migration", required_skills=["python"])]
    report = engine.validate(clients=clients, tasks=tasks)
    assert report.errors == []
    assert len(report.warnings) == 1
    warning = report.warnings[0]
    assert warning.field == "RequestedTaskIDs"
    assert "T999" in warning.message
    assert warning.auto_fixable is False


def test_range_revalidation_after_edit(engine: ValidationEngine) -> None:
    worker = Worker("W001", "Bob", ["excel"], max_load_per_phase=12)
    issues = engine.validate_entity(worker, 0)
    assert len(issues) == 1
    assert issues[0].severity == "error"
    assert issues[0].field == "MaxLoadPerPhase"
    assert issues[0].auto_fixable is True
    assert issues[0].suggested_fix == "Ramener à 10"


def test_non_integer_number(engine: ValidationEngine) -> None:
    client = Client("C001", "Acme", priority_level="3")  # type: ignore[arg-type]
    issues = engine.validate_entity(client, 0)
    assert [i.field for i in issues] == ["PriorityLevel"]
    assert issues[0].severity == "error"


def test_required_fields(engine: ValidationEngine) -> None:
    issues = engine.validate_entity(Client("", ""), 0)
    assert {i.field for i in issues} == {"ClientID", "ClientName"}
    assert all(i.severity == "error" for i in issues)


def test_int_list_entries_checked(engine: ValidationEngine) -> None:
    task = Task("T001", "Migration", required_skills=["python"], preferred_phases=[1, 30, 1])
    issues = engine.validate_entity(task, 0)
    severities = sorted(i.severity for i in issues)
    assert severities == ["error", "warning"]
    assert all(i.field == "PreferredPhases" for i in issues)


def test_skills_must_be_list_of_strings(engine: ValidationEngine) -> None:
    worker = Worker("W001", "Alice", skills="python")  # type: ignore[arg-type]
    issues = engine.validate_entity(worker, 0)
    assert [(i.field, i.severity) for i in issues] == [("Skills", "error")]

    empty = engine.validate_entity(Worker("W002", "Bob", skills=[]), 1)
    assert [(i.field, i.severity) for i in empty] == [("Skills", "warning")]


def test_list_length_limit() -> None:
    engine = ValidationEngine(Config(max_list_length=2))
    task = Task("T001", "Migration", required_skills=["a", "b", "c"])
    issues = engine.validate_entity(task, 0)
    assert len(issues) == 1
    assert "trop longue" in issues[0].message


def test_json_field_checked(engine: ValidationEngine) -> None:
    issues = engine.validate_entity(Client("C001", "Acme", attributes_json="{invalid}"), 0)
    assert [(i.field, i.severity) for i in issues] == [("AttributesJSON", "error")]

    big = ValidationEngine(Config(max_json_size=10))
    issues = big.validate_entity(Client("C001", "Acme", attributes_json='{"key": "long value"}'), 0)
    assert "trop volumineux" in issues[0].message


def test_string_length_limit() -> None:
    engine = ValidationEngine(Config(max_string_length=5))
    issues = engine.validate_entity(Client("C001", "Nom trop long", group_tag="A"), 0)
    assert [i.field for i in issues] == ["ClientName"]


def test_max_load_above_slot_count(engine: ValidationEngine) -> None:
    worker = Worker("W001", "Alice", ["python"], [1, 2], max_load_per_phase=4)
    issues = engine.validate_entity(worker, 0)
    assert [(i.field, i.severity) for i in issues] == [("MaxLoadPerPhase", "warning")]


def test_skill_coverage(engine: ValidationEngine) -> None:
    workers = [Worker("W001", "Alice", ["python", "excel"], [1], 1)]
    tasks = [Task("T001", "Migration", required_skills=["python", "rust"], preferred_phases=[1])]
    issues = engine.check_skill_coverage(workers, tasks)
    by_severity = {i.severity: i for i in issues}
    assert len(issues) == 2
    assert "rust" in by_severity["warning"].message
    assert "excel" in by_severity["info"].message


def test_phase_capacity(engine: ValidationEngine) -> None:
    workers = [Worker("W001", "Alice", ["python"], [1], 1)]
    tasks = [
        Task("T001", "a", duration=3, required_skills=["python"], preferred_phases=[1]),
        Task("T002", "b", duration=1, required_skills=["python"], preferred_phases=[2]),
    ]
    issues = engine.check_phase_capacity(workers, tasks)
    assert [i.entity_id for i in issues] == ["PHASE_1", "PHASE_2"]
    assert all(i.severity == "warning" and i.row == -1 for i in issues)


def test_cross_entity_checks_disabled() -> None:
    engine = ValidationEngine(Config(cross_entity_checks=False))
    workers = [Worker("W001", "Alice", ["excel"], [1], 1)]
    tasks = [Task("T001", "a", duration=5, required_skills=["rust"], preferred_phases=[1])]
    report = engine.validate(workers=workers, tasks=tasks)
    assert report.issues == []


def test_revalidation_after_manual_fix(engine: ValidationEngine) -> None:
    clients = [Client("C001", "Acme"), Client("C001", "Globex")]
    assert len(engine.validate(clients=clients).errors) == 1
    clients[1].client_id = "C002"
    report = engine.validate(clients=clients)
    assert report.errors == []


def test_counts_by_kind(engine: ValidationEngine) -> None:
    report = engine.validate(
        clients=[Client("C001", "Acme", requested_task_ids=["T404"])],
        tasks=[Task("T001", "", required_skills=["x"])],
    )
    assert report.counts_by_kind["client"] == {"error": 0, "warning": 1, "info": 0}
    assert report.counts_by_kind["task"] == {"error": 1, "warning": 0, "info": 0}
    assert report.counts_by_kind["worker"] == {"error": 0, "warning": 0, "info": 0}


def test_quality_score() -> None:
    assert quality_score(0, 0) == 100.0
    assert quality_score(1, 2) == 86.0
    assert quality_score(20, 0) == 0.0
    assert quality_score(1, 1, Config(error_weight=5, warning_weight=0)) == 95.0


def test_validate_dataset_shortcut() -> None:
    report = validate_dataset(clients=[Client("C001", "Acme"), Client("C001", "Acme")])
    assert len(report.errors) == 1
    assert report.score == 90.0


def test_issues_for_entity(engine: ValidationEngine) -> None:
    report = engine.validate(
        clients=[Client("C001", "Acme", requested_task_ids=["T404"]), Client("C002", "")],
        tasks=[Task("T001", "Migration", required_skills=["x"])],
    )
    assert [i.field for i in report.for_entity("client", "C001")] == ["RequestedTaskIDs"]
    assert [i.field for i in report.for_entity("client", "C002")] == ["ClientName"]
    assert report.for_entity("task", "T001") == []


def test_revalidation_after_record_edit(engine: ValidationEngine) -> None:
    workers = [Worker("W001", "Alice", ["python"], [1, 2], 1)]
    record = entity_to_record(workers[0])
    record["MaxLoadPerPhase"] = 15
    record["Skills"] = []
    edited = entity_from_record("worker", record)
    assert isinstance(edited, Worker)
    assert edited.worker_id == "W001"

    report = engine.validate(workers=[edited])
    assert {(i.field, i.severity) for i in report.issues} == {
        ("MaxLoadPerPhase", "error"),
        ("MaxLoadPerPhase", "warning"),
        ("Skills", "warning"),
    }

    record["MaxLoadPerPhase"] = 2
    record["Skills"] = ["python"]
    assert engine.validate(workers=[entity_from_record("worker", record)]).issues == []
