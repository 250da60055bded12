"""Assignment validation shared by the timeline client and the server.

The same ``validate_assignment`` runs in both places: on the client as an
advisory pre-check while an operator edits or drags, and on the server as
the authoritative check immediately before a write. Only the server result
may block a write (see ``check_assignment``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from .classifier import classify
from .engine import peak_days, workload_over_range
from .errors import CapacityExceededError, InvalidIntervalError, PayloadValidationError
from .io_utils import parse_day
from .models import (
    ASSIGNMENT_STATUSES,
    DEFAULT_THRESHOLDS,
    DR_STATUSES,
    FULL_CAPACITY_PCT,
    POSITION_STATUSES,
    Assignment,
    CapacityThresholds,
    WorkloadStatus,
)

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EPSILON = 1e-6

# camelCase spellings sent by older callers, mapped to canonical field names.
_VALIDATE_ALIASES = {
    "employeeId": "employee_id",
    "startDate": "start_date",
    "endDate": "end_date",
    "allocationPercentage": "allocation_percentage",
    "currentAssignmentId": "current_assignment_id",
}


def validate_assignment(
    assignments: Iterable[Assignment],
    employee_id: int,
    proposed_start: date,
    proposed_end: date,
    proposed_allocation: float,
    exclude_assignment_id: Optional[int] = None,
    thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
) -> WorkloadStatus:
    existing_max = workload_over_range(
        assignments, employee_id, proposed_start, proposed_end, exclude_assignment_id
    )
    return classify(existing_max + float(proposed_allocation), thresholds, proposed=True)


def check_assignment(
    assignments: Iterable[Assignment],
    employee_id: int,
    proposed_start: date,
    proposed_end: date,
    proposed_allocation: float,
    exclude_assignment_id: Optional[int] = None,
    thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
) -> WorkloadStatus:
    """Blocking form of ``validate_assignment``; raises on an error verdict."""
    snapshot = list(assignments)
    status = validate_assignment(
        snapshot,
        employee_id,
        proposed_start,
        proposed_end,
        proposed_allocation,
        exclude_assignment_id,
        thresholds,
    )
    if status.is_error:
        peaks = peak_days(snapshot, employee_id, proposed_start, proposed_end, exclude_assignment_id)
        if not peaks:
            peaks = [proposed_start]
        logger.info(
            "Rejected allocation of %s%% for employee %s (%s..%s): total %s%%",
            proposed_allocation,
            employee_id,
            proposed_start,
            proposed_end,
            status.value,
        )
        raise CapacityExceededError(status.value, employee_id, peaks, status.message)
    return status


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _check_allocation(value: object, step: Optional[float], problems: List[str]) -> None:
    if not _is_number(value) or value <= 0 or value > FULL_CAPACITY_PCT:
        problems.append("Allocation percentage must be between 0 and 100")
        return
    if step:
        remainder = float(value) % step
        if min(remainder, step - remainder) > EPSILON:
            problems.append(f"Allocation must be in steps of {step:g}%")


def _check_day(value: object, label: str, problems: List[str]) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value):
        problems.append(f"{label} must be in YYYY-MM-DD format")
        return None
    try:
        return parse_day(value, label)
    except InvalidIntervalError:
        problems.append(f"{label} must be a valid calendar date")
        return None


@dataclass(frozen=True)
class ValidateRequest:
    employee_id: int
    start_date: date
    end_date: date
    allocation_percentage: float
    current_assignment_id: Optional[int] = None

    @classmethod
    def from_payload(
        cls, data: Mapping[str, object], allocation_step: Optional[float] = None
    ) -> "ValidateRequest":
        if not isinstance(data, Mapping):
            raise PayloadValidationError(["request body must be an object"])
        normalised: Dict[str, object] = {}
        for key, value in data.items():
            normalised[_VALIDATE_ALIASES.get(key, key)] = value

        problems: List[str] = []
        employee_id = normalised.get("employee_id")
        if not _is_positive_int(employee_id):
            problems.append("Valid employee ID is required")
        start = _check_day(normalised.get("start_date"), "Start date", problems)
        end = _check_day(normalised.get("end_date"), "End date", problems)
        if start and end and end < start:
            problems.append("End date must be after start date")
        allocation = normalised.get("allocation_percentage")
        _check_allocation(allocation, allocation_step, problems)
        current = normalised.get("current_assignment_id")
        if current is not None and not _is_positive_int(current):
            problems.append("Current assignment ID must be a positive integer")
        if problems:
            raise PayloadValidationError(problems)
        return cls(
            employee_id=employee_id,  # type: ignore[arg-type]
            start_date=start,  # type: ignore[arg-type]
            end_date=end,  # type: ignore[arg-type]
            allocation_percentage=float(allocation),  # type: ignore[arg-type]
            current_assignment_id=current,  # type: ignore[arg-type]
        )

    def evaluate(
        self,
        assignments: Iterable[Assignment],
        thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
    ) -> "ValidateResponse":
        status = validate_assignment(
            assignments,
            self.employee_id,
            self.start_date,
            self.end_date,
            self.allocation_percentage,
            self.current_assignment_id,
            thresholds,
        )
        return ValidateResponse.from_status(status)


@dataclass(frozen=True)
class ValidateResponse:
    valid: bool
    warning: bool
    total: float
    message: str = ""

    @classmethod
    def from_status(cls, status: WorkloadStatus) -> "ValidateResponse":
        return cls(
            valid=not status.is_error,
            warning=status.is_warning,
            total=status.value,
            message=status.message,
        )

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "valid": self.valid,
            "warning": self.warning,
            "total": self.total,
        }
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass(frozen=True)
class AssignmentPayload:
    """Create/update body for an assignment, after field-level checks."""

    project_id: Optional[int] = None
    employee_id: Optional[int] = None
    role: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    allocation_percentage: Optional[float] = None
    status: Optional[str] = None
    dr_status: Optional[str] = None
    position_status: Optional[str] = None
    project_name: Optional[str] = None

    @classmethod
    def from_payload(
        cls,
        data: Mapping[str, object],
        partial: bool = False,
        allocation_step: Optional[float] = None,
    ) -> "AssignmentPayload":
        if not isinstance(data, Mapping):
            raise PayloadValidationError(["request body must be an object"])
        problems: List[str] = []

        def present(key: str) -> bool:
            return not partial or data.get(key) is not None

        for key, label in (("project_id", "project"), ("employee_id", "employee")):
            if present(key) and not _is_positive_int(data.get(key)):
                problems.append(f"Valid {label} ID is required")
        role = data.get("role")
        if present("role") and (not isinstance(role, str) or len(role.strip()) < 2):
            problems.append("Role must be at least 2 characters long")
        start = _check_day(data.get("start_date"), "Start date", problems) if present("start_date") else None
        end = _check_day(data.get("end_date"), "End date", problems) if present("end_date") else None
        if start and end and end < start:
            problems.append("End date must be after start date")
        if present("allocation_percentage"):
            _check_allocation(data.get("allocation_percentage"), allocation_step, problems)

        status = data.get("status")
        if status is not None and status not in ASSIGNMENT_STATUSES:
            problems.append(f"Status must be one of: {', '.join(ASSIGNMENT_STATUSES)}")
        for key, label, allowed in (
            ("dr_status", "DR status", DR_STATUSES),
            ("position_status", "Position status", POSITION_STATUSES),
        ):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                problems.append(f"{label} must be a string")
            elif value not in allowed:
                problems.append(f"{label} must be one of: {', '.join(allowed)}")
        project_name = data.get("project_name")
        if project_name is not None and not isinstance(project_name, str):
            problems.append("Project name must be a string")
        if problems:
            raise PayloadValidationError(problems)

        allocation = data.get("allocation_percentage")
        return cls(
            project_id=data.get("project_id"),  # type: ignore[arg-type]
            employee_id=data.get("employee_id"),  # type: ignore[arg-type]
            role=role.strip() if isinstance(role, str) else None,
            start_date=start,
            end_date=end,
            allocation_percentage=float(allocation) if allocation is not None else None,  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
            dr_status=data.get("dr_status"),  # type: ignore[arg-type]
            position_status=data.get("position_status"),  # type: ignore[arg-type]
            project_name=project_name,  # type: ignore[arg-type]
        )

    def changes(self) -> Dict[str, object]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def build(self, assignment_id: int) -> Assignment:
        values = self.changes()
        values.setdefault("status", "active")
        values.setdefault("project_name", "")
        return Assignment(id=assignment_id, **values)  # type: ignore[arg-type]

    def apply_to(self, assignment: Assignment) -> Assignment:
        return replace(assignment, **self.changes())
