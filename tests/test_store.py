from datetime import date

import pytest

from webapp.store import AssignmentStore
from workload_tracker.errors import (
    AssignmentNotFoundError,
    CapacityExceededError,
    InvalidIntervalError,
    PayloadValidationError,
)
from workload_tracker.models import Employee
from workload_tracker.validation import AssignmentPayload


def _payload(start, end, allocation, employee_id=1, **extra):
    body = {
        "project_id": 10,
        "employee_id": employee_id,
        "role": "Developer",
        "start_date": start,
        "end_date": end,
        "allocation_percentage": allocation,
    }
    body.update(extra)
    return AssignmentPayload.from_payload(body)


@pytest.fixture
def store():
    store = AssignmentStore()
    store.add_employee(Employee(id=1, name="Ada"))
    store.add_employee(Employee(id=2, name="Grace"))
    store.create(_payload("2024-01-01", "2024-12-31", 60))
    store.create(_payload("2024-03-01", "2024-08-31", 30))
    return store


def test_create_assigns_ids_and_defaults(store):
    created = store.create(_payload("2024-01-01", "2024-01-31", 40, employee_id=2))
    assert created.id == 3
    assert created.status == "active"
    assert store.get(3) == created


def test_create_over_capacity_writes_nothing(store):
    with pytest.raises(CapacityExceededError) as excinfo:
        store.create(_payload("2024-04-01", "2024-05-01", 20))
    assert excinfo.value.total == 110
    assert len(store.snapshot()) == 2


def test_rejected_create_does_not_consume_an_id(store):
    with pytest.raises(CapacityExceededError):
        store.create(_payload("2024-04-01", "2024-05-01", 20))
    with pytest.raises(AssignmentNotFoundError):
        store.create(_payload("2024-01-01", "2024-01-02", 10, employee_id=42))
    assert store.create(_payload("2024-01-01", "2024-01-31", 40, employee_id=2)).id == 3


def test_update_excludes_its_own_previous_allocation(store):
    updated = store.update(2, AssignmentPayload.from_payload({"allocation_percentage": 35}, partial=True))
    assert updated.allocation_percentage == 35
    assert store.last_status.is_warning

    with pytest.raises(CapacityExceededError):
        store.update(2, AssignmentPayload.from_payload({"allocation_percentage": 40}, partial=True))
    assert store.get(2).allocation_percentage == 35


def test_update_rejects_inverted_result(store):
    with pytest.raises(InvalidIntervalError):
        store.update(2, AssignmentPayload.from_payload({"end_date": "2024-02-01"}, partial=True))


def test_retired_assignments_free_capacity(store):
    store.retire(2)
    assert store.get(2).status == "cancelled"
    created = store.create(_payload("2024-04-01", "2024-05-01", 30))
    assert created.allocation_percentage == 30


def test_retire_to_active_is_rejected(store):
    with pytest.raises(PayloadValidationError):
        store.retire(1, status="active")


def test_move_reuses_update_check(store):
    moved = store.move(2, date(2024, 9, 1), date(2024, 9, 30))
    assert moved.start_date == date(2024, 9, 1)


def test_unknown_ids(store):
    with pytest.raises(AssignmentNotFoundError):
        store.get(99)
    with pytest.raises(AssignmentNotFoundError):
        store.create(_payload("2024-01-01", "2024-01-02", 10, employee_id=42))


def test_list_for_employee_is_sorted(store):
    store.create(_payload("2023-06-01", "2023-06-30", 10))
    assert [a.start_date for a in store.list_for_employee(1)] == [
        date(2023, 6, 1),
        date(2024, 1, 1),
        date(2024, 3, 1),
    ]
