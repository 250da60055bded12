from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

from .errors import InvalidIntervalError
from .io_utils import parse_day
from .models import DEFAULT_COLUMN_WIDTHS, Assignment

ONE_DAY = timedelta(days=1)
INVALID_RANGE_MESSAGE = "Invalid date range"


class Scale(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: object) -> "Scale":
        if isinstance(value, Scale):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"unsupported timeline scale '{value}'") from exc


def days_between(start: date, end: date) -> int:
    return (end - start).days


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class BlockGeometry:
    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass(frozen=True)
class CoordinateModel:
    """Date <-> horizontal pixel transform for one scale and timeline origin."""

    timeline_start: date
    scale: Scale = Scale.DAY
    column_widths: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_COLUMN_WIDTHS))

    @property
    def column_width(self) -> int:
        return int(self.column_widths[Scale.parse(self.scale).value])

    def date_to_offset(self, day: date) -> float:
        return days_between(self.timeline_start, day) * self.column_width

    def offset_to_date(self, offset_px: float) -> date:
        return self.timeline_start + timedelta(days=round_half_up(offset_px / self.column_width))

    def width_to_days(self, width_px: float) -> int:
        return max(1, round_half_up(width_px / self.column_width))

    def block_geometry(self, assignment: Assignment) -> BlockGeometry:
        left = self.date_to_offset(assignment.start_date)
        width = (days_between(assignment.start_date, assignment.end_date) + 1) * self.column_width
        return BlockGeometry(left=left, width=width)

    def with_scale(self, scale: Scale | str) -> "CoordinateModel":
        return replace(self, scale=Scale.parse(scale))


@dataclass(frozen=True)
class GridColumn:
    index: int
    day: date
    left: float
    width: float
    label: str
    is_weekend: bool = False
    is_month_boundary: bool = False
    is_today: bool = False


def _start_of_month(day: date) -> date:
    return day.replace(day=1)


def _end_of_month(day: date) -> date:
    return _start_of_month(day) + relativedelta(months=1) - ONE_DAY


def _start_of_week(day: date) -> date:
    # Weeks start on Sunday.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_number(day: date) -> int:
    """Sunday-based week of year; week 1 is the week containing 1 January."""
    week_start = _start_of_week(day)
    year = (week_start + timedelta(days=6)).year
    first_week_start = _start_of_week(date(year, 1, 1))
    return days_between(first_week_start, week_start) // 7 + 1


@dataclass
class TimelineView:
    """Visible window and scale of the timeline; owns no assignment data."""

    visible_start: date
    visible_end: date
    scale: Scale = Scale.DAY
    column_widths: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_COLUMN_WIDTHS))

    def __post_init__(self) -> None:
        self.scale = Scale.parse(self.scale)
        if not isinstance(self.visible_start, date) or not isinstance(self.visible_end, date):
            raise InvalidIntervalError(INVALID_RANGE_MESSAGE)
        if self.visible_end < self.visible_start:
            raise InvalidIntervalError(INVALID_RANGE_MESSAGE)

    @classmethod
    def default_for(
        cls,
        today: date,
        scale: Scale | str = Scale.DAY,
        column_widths: Optional[Dict[str, int]] = None,
    ) -> "TimelineView":
        return cls(
            visible_start=_start_of_month(today),
            visible_end=_end_of_month(today),
            scale=Scale.parse(scale),
            column_widths=dict(column_widths or DEFAULT_COLUMN_WIDTHS),
        )

    @property
    def column_width(self) -> int:
        return int(self.column_widths[self.scale.value])

    def model(self) -> CoordinateModel:
        return CoordinateModel(self.visible_start, self.scale, dict(self.column_widths))

    def set_scale(self, scale: Scale | str) -> CoordinateModel:
        self.scale = Scale.parse(scale)
        return self.model()

    def _shift(self, months: int) -> None:
        self.visible_start = _start_of_month(self.visible_start + relativedelta(months=months))
        self.visible_end = _end_of_month(self.visible_end + relativedelta(months=months))

    def previous_month(self) -> None:
        self._shift(-1)

    def next_month(self) -> None:
        self._shift(1)

    def contains(self, day: date) -> bool:
        return self.visible_start <= day <= self.visible_end

    def time_points(self) -> List[date]:
        if self.scale is Scale.DAY:
            current, step = self.visible_start, ONE_DAY
        elif self.scale is Scale.WEEK:
            current, step = _start_of_week(self.visible_start), timedelta(weeks=1)
        else:
            current, step = _start_of_month(self.visible_start), relativedelta(months=1)
        points: List[date] = []
        while current <= self.visible_end:
            points.append(current)
            current = current + step
        return points


def _column_label(scale: Scale, day: date) -> str:
    if scale is Scale.DAY:
        return str(day.day)
    if scale is Scale.WEEK:
        return f"W{week_number(day)}"
    return day.strftime("%b")


def grid_columns(view: TimelineView, today: Optional[date] = None) -> List[GridColumn]:
    """Header/grid columns for the visible window, with day-scale decoration."""
    width = view.column_width
    is_day_scale = view.scale is Scale.DAY
    columns: List[GridColumn] = []
    for index, day in enumerate(view.time_points()):
        columns.append(
            GridColumn(
                index=index,
                day=day,
                left=index * width,
                width=width,
                label=_column_label(view.scale, day),
                is_weekend=is_day_scale and day.weekday() >= 5,
                is_month_boundary=is_day_scale and index > 0 and day.day == 1,
                is_today=is_day_scale and today is not None and day == today,
            )
        )
    return columns


def render_timeline(
    start_raw: object,
    end_raw: object,
    scale_raw: object,
    assignments: Iterable[Assignment],
    today: Optional[date] = None,
    column_widths: Optional[Dict[str, int]] = None,
) -> Dict[str, object]:
    """Project a window and its assignments for the presentation layer.

    Malformed or inverted ranges produce ``{"error": ...}`` instead of a
    guessed default range.
    """
    try:
        view = TimelineView(
            visible_start=parse_day(start_raw, "start_date"),
            visible_end=parse_day(end_raw, "end_date"),
            scale=Scale.parse(scale_raw or Scale.DAY),
            column_widths=dict(column_widths or DEFAULT_COLUMN_WIDTHS),
        )
    except (InvalidIntervalError, ValueError):
        return {"error": INVALID_RANGE_MESSAGE}
    model = view.model()
    columns = grid_columns(view, today)
    blocks = []
    for assignment in assignments:
        if assignment.end_date < view.visible_start or assignment.start_date > view.visible_end:
            continue
        geometry = model.block_geometry(assignment)
        blocks.append(
            {
                "assignment_id": assignment.id,
                "employee_id": assignment.employee_id,
                "label": assignment.project_name or assignment.role,
                "left": geometry.left,
                "width": geometry.width,
                "status": assignment.status,
            }
        )
    return {
        "scale": view.scale.value,
        "start_date": view.visible_start.isoformat(),
        "end_date": view.visible_end.isoformat(),
        "column_width": view.column_width,
        "total_width": len(columns) * view.column_width,
        "columns": [
            {
                "index": column.index,
                "date": column.day.isoformat(),
                "left": column.left,
                "label": column.label,
                "is_weekend": column.is_weekend,
                "is_month_boundary": column.is_month_boundary,
                "is_today": column.is_today,
            }
            for column in columns
        ],
        "blocks": blocks,
    }
