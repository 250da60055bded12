from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .classifier import classify
from .errors import InvalidIntervalError
from .models import DEFAULT_THRESHOLDS, Assignment, CapacityThresholds, Employee

ONE_DAY = timedelta(days=1)
PRECISION = 6

DAILY_COLUMNS = ["date", "employee_id", "total_pct", "assignment_ids"]
REPORT_COLUMNS = [
    "date",
    "employee_id",
    "employee_name",
    "total_pct",
    "status",
    "assignment_ids",
]


def _check_interval(start: date, end: date) -> None:
    if not isinstance(start, date) or not isinstance(end, date):
        raise InvalidIntervalError(f"expected calendar dates, got {start!r} and {end!r}")
    if end < start:
        raise InvalidIntervalError(f"end date {end} is before start date {start}")


def _relevant(
    assignments: Iterable[Assignment],
    employee_id: int,
    exclude_assignment_id: Optional[int],
) -> List[Assignment]:
    return [
        assignment
        for assignment in assignments
        if assignment.employee_id == employee_id
        and assignment.is_active()
        and (exclude_assignment_id is None or assignment.id != exclude_assignment_id)
    ]


def workload_on_date(
    assignments: Iterable[Assignment],
    employee_id: int,
    day: date,
    exclude_assignment_id: Optional[int] = None,
) -> float:
    if not isinstance(day, date):
        raise InvalidIntervalError(f"expected a calendar date, got {day!r}")
    total = sum(
        assignment.allocation_percentage
        for assignment in _relevant(assignments, employee_id, exclude_assignment_id)
        if assignment.covers(day)
    )
    return round(float(total), PRECISION)


def _segments(
    assignments: Iterable[Assignment],
    employee_id: int,
    start: date,
    end: date,
    exclude_assignment_id: Optional[int],
) -> List[Tuple[date, date, float]]:
    """Split [start, end] into runs of constant daily workload.

    Each assignment contributes +allocation on its (clipped) start day and
    -allocation on the day after its (clipped) end day.
    """
    events: Dict[date, float] = defaultdict(float)
    events[start] += 0.0
    for assignment in _relevant(assignments, employee_id, exclude_assignment_id):
        if assignment.end_date < start or assignment.start_date > end:
            continue
        lower = max(assignment.start_date, start)
        upper = min(assignment.end_date, end)
        events[lower] += assignment.allocation_percentage
        events[upper + ONE_DAY] -= assignment.allocation_percentage

    boundaries = sorted(events)
    segments: List[Tuple[date, date, float]] = []
    running = 0.0
    for idx, day in enumerate(boundaries):
        if day > end:
            break
        running += events[day]
        next_day = boundaries[idx + 1] if idx + 1 < len(boundaries) else end + ONE_DAY
        segment_end = min(next_day - ONE_DAY, end)
        segments.append((day, segment_end, round(running, PRECISION)))
    return segments


def workload_over_range(
    assignments: Iterable[Assignment],
    employee_id: int,
    start: date,
    end: date,
    exclude_assignment_id: Optional[int] = None,
) -> float:
    """Maximum single-day workload for the employee within [start, end]."""
    _check_interval(start, end)
    segments = _segments(list(assignments), employee_id, start, end, exclude_assignment_id)
    return max((value for _, _, value in segments), default=0.0)


def peak_days(
    assignments: Iterable[Assignment],
    employee_id: int,
    start: date,
    end: date,
    exclude_assignment_id: Optional[int] = None,
) -> List[date]:
    """Days inside [start, end] on which the range maximum is reached."""
    _check_interval(start, end)
    segments = _segments(list(assignments), employee_id, start, end, exclude_assignment_id)
    peak = max((value for _, _, value in segments), default=0.0)
    if peak <= 0:
        return []
    days: List[date] = []
    for segment_start, segment_end, value in segments:
        if value != peak:
            continue
        current = segment_start
        while current <= segment_end:
            days.append(current)
            current += ONE_DAY
    return days


def daily_workload(
    assignments: Sequence[Assignment],
    employee_id: int,
    start: date,
    end: date,
) -> pd.DataFrame:
    _check_interval(start, end)
    relevant = _relevant(assignments, employee_id, None)
    rows = []
    for stamp in pd.date_range(start, end, freq="D"):
        day = stamp.date()
        covering = [assignment for assignment in relevant if assignment.covers(day)]
        rows.append(
            {
                "date": day,
                "employee_id": employee_id,
                "total_pct": round(
                    float(sum(a.allocation_percentage for a in covering)), PRECISION
                ),
                "assignment_ids": tuple(a.id for a in covering),
            }
        )
    return pd.DataFrame(rows, columns=DAILY_COLUMNS)


def workload_frame(
    employees: Sequence[Employee],
    assignments: Sequence[Assignment],
    start: date,
    end: date,
    thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
) -> pd.DataFrame:
    """Per-employee daily workload with the classified status of every day."""
    _check_interval(start, end)
    frames = []
    for employee in employees:
        frame = daily_workload(assignments, employee.id, start, end)
        frame["employee_name"] = employee.name
        frame["status"] = frame["total_pct"].map(
            lambda total: classify(total, thresholds).severity.label
        )
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=REPORT_COLUMNS)
    report = pd.concat(frames, ignore_index=True)
    return report[REPORT_COLUMNS]


def summarize_overallocations(report: pd.DataFrame) -> List[Dict[str, object]]:
    """Collapse the daily report into one entry per employee that reached error."""
    if report.empty:
        return []
    flagged = report[report["status"] == "error"]
    summary: List[Dict[str, object]] = []
    for (employee_id, name), rows in flagged.groupby(["employee_id", "employee_name"], sort=True):
        summary.append(
            {
                "employee_id": employee_id,
                "employee_name": name,
                "peak_pct": float(rows["total_pct"].max()),
                "first_day": rows["date"].min(),
                "last_day": rows["date"].max(),
                "days": int(len(rows)),
            }
        )
    return summary
