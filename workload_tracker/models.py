from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import IntEnum
from typing import Dict, Literal, Optional, Tuple

from .errors import InvalidIntervalError

AssignmentStatus = Literal["active", "completed", "cancelled"]
ASSIGNMENT_STATUSES: Tuple[str, ...] = ("active", "completed", "cancelled")
DR_STATUSES: Tuple[str, ...] = ("primary", "secondary", "backup")
POSITION_STATUSES: Tuple[str, ...] = ("confirmed", "tentative", "proposed")
SENIORITY_LEVELS: Tuple[str, ...] = ("Junior", "Mid", "Senior", "Lead")

FULL_CAPACITY_PCT = 100.0

DEFAULT_COLUMN_WIDTHS: Dict[str, int] = {"day": 40, "week": 200, "month": 240}


@dataclass(frozen=True)
class Employee:
    """Read-only reference data for a staffed person."""

    id: int
    name: str
    seniority_level: str = "Mid"
    qualifications: Tuple[str, ...] = ()
    capacity_pct: float = FULL_CAPACITY_PCT

    def has_qualification(self, qualification: str) -> bool:
        return qualification in self.qualifications


@dataclass(frozen=True)
class Assignment:
    """An employee allocated to a project for an inclusive date range."""

    id: int
    project_id: int
    employee_id: int
    role: str
    start_date: date
    end_date: date
    allocation_percentage: float
    status: AssignmentStatus = "active"
    dr_status: Optional[str] = None
    position_status: Optional[str] = None
    project_name: str = ""

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise InvalidIntervalError(
                f"assignment {self.id}: end_date {self.end_date} is before start_date {self.start_date}"
            )
        if not (0 <= self.allocation_percentage <= FULL_CAPACITY_PCT):
            raise ValueError(
                f"assignment {self.id}: allocation_percentage must be in [0, 100], "
                f"got {self.allocation_percentage}"
            )

    def is_active(self) -> bool:
        return self.status == "active"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def shifted(self, days: int) -> "Assignment":
        delta = timedelta(days=days)
        return replace(self, start_date=self.start_date + delta, end_date=self.end_date + delta)

    def with_dates(self, start_date: date, end_date: date) -> "Assignment":
        return replace(self, start_date=start_date, end_date=end_date)

    def with_end(self, end_date: date) -> "Assignment":
        return replace(self, end_date=end_date)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "employee_id": self.employee_id,
            "role": self.role,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "allocation_percentage": self.allocation_percentage,
            "status": self.status,
            "dr_status": self.dr_status,
            "position_status": self.position_status,
            "project_name": self.project_name,
        }


@dataclass(frozen=True)
class CapacityThresholds:
    warning: float = 80.0
    error: float = 100.0

    def __post_init__(self) -> None:
        if self.warning < 0 or self.error < 0:
            raise ValueError("capacity thresholds must be non-negative")
        if self.warning > self.error:
            raise ValueError("warning threshold must not exceed error threshold")


DEFAULT_THRESHOLDS = CapacityThresholds()


class Severity(IntEnum):
    NORMAL = 0
    WARNING = 1
    ERROR = 2

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class WorkloadStatus:
    value: float
    is_warning: bool
    is_error: bool
    message: str = ""

    @property
    def severity(self) -> Severity:
        if self.is_error:
            return Severity.ERROR
        if self.is_warning:
            return Severity.WARNING
        return Severity.NORMAL


@dataclass(frozen=True)
class TrackerConfig:
    thresholds: CapacityThresholds = DEFAULT_THRESHOLDS
    default_scale: str = "day"
    column_widths: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_COLUMN_WIDTHS))
    allocation_step: Optional[float] = None
    logging_level: str = "INFO"

    def column_width_for(self, scale: str) -> int:
        if scale not in self.column_widths:
            raise KeyError(f"column width for scale '{scale}' missing in configuration")
        return int(self.column_widths[scale])
