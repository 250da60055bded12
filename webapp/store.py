from __future__ import annotations

import copy
import logging
import threading
from datetime import date
from typing import Dict, List, Optional

from workload_tracker.errors import AssignmentNotFoundError, PayloadValidationError
from workload_tracker.models import (
    ASSIGNMENT_STATUSES,
    DEFAULT_THRESHOLDS,
    Assignment,
    CapacityThresholds,
    Employee,
    WorkloadStatus,
)
from workload_tracker.validation import AssignmentPayload, check_assignment

logger = logging.getLogger(__name__)


class AssignmentStore:
    """In-memory server snapshot of employees and assignments.

    Every create/update re-runs the capacity check against the current
    snapshot while holding the lock, so the check and the write see the
    same data. Nothing is written when the check fails.
    """

    def __init__(self, thresholds: CapacityThresholds = DEFAULT_THRESHOLDS) -> None:
        self.thresholds = thresholds
        self._employees: Dict[int, Employee] = {}
        self._assignments: Dict[int, Assignment] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.last_status: Optional[WorkloadStatus] = None

    def add_employee(self, employee: Employee) -> Employee:
        with self._lock:
            self._employees[employee.id] = employee
        return employee

    def get_employee(self, employee_id: int) -> Employee:
        with self._lock:
            employee = self._employees.get(employee_id)
        if employee is None:
            raise AssignmentNotFoundError("Employee", employee_id)
        return employee

    def load(self, assignments: List[Assignment]) -> None:
        """Seed the snapshot with already-persisted records (no capacity check)."""
        with self._lock:
            for assignment in assignments:
                self._assignments[assignment.id] = assignment
            highest = max(self._assignments, default=0)
            self._next_id = highest + 1

    def get(self, assignment_id: int) -> Assignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
            if assignment is None:
                raise AssignmentNotFoundError("Assignment", assignment_id)
            return copy.deepcopy(assignment)

    def snapshot(self) -> List[Assignment]:
        with self._lock:
            return [copy.deepcopy(assignment) for assignment in self._assignments.values()]

    def list_for_employee(self, employee_id: int) -> List[Assignment]:
        with self._lock:
            assignments = [a for a in self._assignments.values() if a.employee_id == employee_id]
        assignments.sort(key=lambda a: (a.start_date, a.id))
        return [copy.deepcopy(assignment) for assignment in assignments]

    def _check(self, candidate: Assignment) -> None:
        if candidate.employee_id not in self._employees:
            raise AssignmentNotFoundError("Employee", candidate.employee_id)
        if not candidate.is_active():
            return
        self.last_status = check_assignment(
            self._assignments.values(),
            candidate.employee_id,
            candidate.start_date,
            candidate.end_date,
            candidate.allocation_percentage,
            candidate.id,
            self.thresholds,
        )

    def create(self, payload: AssignmentPayload) -> Assignment:
        with self._lock:
            candidate = payload.build(self._next_id)
            self._check(candidate)
            self._assignments[candidate.id] = candidate
            self._next_id += 1
        logger.info(
            "Created assignment %s for employee %s (%s..%s, %s%%)",
            candidate.id,
            candidate.employee_id,
            candidate.start_date,
            candidate.end_date,
            candidate.allocation_percentage,
        )
        return copy.deepcopy(candidate)

    def update(self, assignment_id: int, payload: AssignmentPayload) -> Assignment:
        with self._lock:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise AssignmentNotFoundError("Assignment", assignment_id)
            candidate = payload.apply_to(current)
            self._check(candidate)
            self._assignments[assignment_id] = candidate
        logger.info("Updated assignment %s", assignment_id)
        return copy.deepcopy(candidate)

    def move(self, assignment_id: int, start_date: date, end_date: date) -> Assignment:
        return self.update(assignment_id, AssignmentPayload(start_date=start_date, end_date=end_date))

    def retire(self, assignment_id: int, status: str = "cancelled") -> Assignment:
        if status not in ASSIGNMENT_STATUSES or status == "active":
            raise PayloadValidationError([f"cannot retire assignment to status '{status}'"])
        with self._lock:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise AssignmentNotFoundError("Assignment", assignment_id)
            retired = AssignmentPayload(status=status).apply_to(current)
            self._assignments[assignment_id] = retired
        logger.info("Retired assignment %s as %s", assignment_id, status)
        return copy.deepcopy(retired)
