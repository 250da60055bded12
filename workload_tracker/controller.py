"""Per-assignment drag/resize gesture handling for the timeline.

Each rendered assignment owns one ``DragResizeController``. A controller is
``IDLE`` until a fresh primary press on the block body (drag) or on the
trailing resize handle (resize). While a gesture runs the controller is
attached to a ``PointerSource`` so that moves and the release are delivered
even when the pointer is outside the block; it is detached again on every
terminating event.

Pointer coordinates are horizontal pixel offsets in the timeline's own
coordinate space.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple

from .models import Assignment
from .timeline import BlockGeometry, CoordinateModel, days_between

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0
SECONDARY_BUTTON = 2
RESIZE_HANDLE_WIDTH = 8

EDIT = "Edit"
DELETE = "Delete"


class GestureState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class PointerSource(Protocol):
    def attach(self, controller: "DragResizeController") -> None:
        ...

    def detach(self, controller: "DragResizeController") -> None:
        ...


class PointerHub:
    """Viewport-level pointer listeners shared by the controllers of one timeline.

    Only controllers with a gesture in progress are attached.
    """

    def __init__(self) -> None:
        self._attached: List["DragResizeController"] = []

    @property
    def attached(self) -> Tuple["DragResizeController", ...]:
        return tuple(self._attached)

    def attach(self, controller: "DragResizeController") -> None:
        if controller not in self._attached:
            self._attached.append(controller)

    def detach(self, controller: "DragResizeController") -> None:
        if controller in self._attached:
            self._attached.remove(controller)

    def move(self, pointer_x: float) -> None:
        for controller in list(self._attached):
            controller.pointer_move(pointer_x)

    def release(self, pointer_x: float) -> None:
        for controller in list(self._attached):
            controller.release(pointer_x)

    def leave(self) -> None:
        for controller in list(self._attached):
            controller.pointer_leave()


@dataclass(frozen=True)
class AssignmentIntents:
    on_move: Callable[[int, date, date], None]
    on_resize: Callable[[int, date], None]
    on_edit: Callable[[Assignment], None]
    on_delete: Callable[[int], None]


@dataclass(frozen=True)
class MenuItem:
    label: str
    destructive: bool = False


@dataclass(frozen=True)
class GestureCommit:
    kind: str
    assignment_id: int
    start_date: date
    end_date: date


class DragResizeController:
    def __init__(
        self,
        assignment: Assignment,
        model: CoordinateModel,
        intents: AssignmentIntents,
        pointer_source: Optional[PointerSource] = None,
    ) -> None:
        self.assignment = assignment
        self.model = model
        self.intents = intents
        self.pointer_source = pointer_source or PointerHub()
        self.state = GestureState.IDLE
        self.pending = False
        self.proposed: Optional[Tuple[date, date]] = None
        self._confirmed_geometry = model.block_geometry(assignment)
        self.live = self._confirmed_geometry
        self._captured_offset = 0.0
        self._captured_x = 0.0
        self._captured_width = 0.0

    @property
    def rollback_geometry(self) -> BlockGeometry:
        """Last geometry confirmed by the server."""
        return self._confirmed_geometry

    @property
    def is_idle(self) -> bool:
        return self.state is GestureState.IDLE

    def _can_start(self, button: int) -> bool:
        return button == PRIMARY_BUTTON and self.is_idle and not self.pending

    def _enter(self, state: GestureState) -> None:
        self.state = state
        self.pointer_source.attach(self)

    def _exit(self) -> None:
        self.state = GestureState.IDLE
        self.pointer_source.detach(self)

    def press_body(self, pointer_x: float, button: int = PRIMARY_BUTTON) -> bool:
        if not self._can_start(button):
            return False
        self._captured_offset = pointer_x - self.live.left
        self._enter(GestureState.DRAGGING)
        return True

    def press_handle(self, pointer_x: float, button: int = PRIMARY_BUTTON) -> bool:
        if not self._can_start(button):
            return False
        self._captured_x = pointer_x
        self._captured_width = self.live.width
        self._enter(GestureState.RESIZING)
        return True

    def pointer_move(self, pointer_x: float) -> None:
        if self.state is GestureState.DRAGGING:
            self.live = BlockGeometry(pointer_x - self._captured_offset, self.live.width)
        elif self.state is GestureState.RESIZING:
            width = max(
                float(self.model.column_width),
                self._captured_width + (pointer_x - self._captured_x),
            )
            self.live = BlockGeometry(self.live.left, width)

    def _drag_dates(self) -> Tuple[date, date]:
        new_start = self.model.offset_to_date(self.live.left)
        delta = timedelta(days=days_between(self.assignment.start_date, new_start))
        return self.assignment.start_date + delta, self.assignment.end_date + delta

    def _resize_dates(self) -> Tuple[date, date]:
        day_count = self.model.width_to_days(self.live.width)
        return self.assignment.start_date, self.assignment.start_date + timedelta(days=day_count - 1)

    def preview_dates(self) -> Tuple[date, date]:
        """Candidate dates for the current live geometry, for reactive pre-checks."""
        if self.state is GestureState.DRAGGING:
            return self._drag_dates()
        if self.state is GestureState.RESIZING:
            return self._resize_dates()
        if self.proposed is not None:
            return self.proposed
        return self.assignment.start_date, self.assignment.end_date

    def release(self, pointer_x: float) -> Optional[GestureCommit]:
        if self.is_idle:
            return None
        self.pointer_move(pointer_x)
        state = self.state
        new_start, new_end = self.preview_dates()
        self._exit()

        if (new_start, new_end) == (self.assignment.start_date, self.assignment.end_date):
            self.live = self._confirmed_geometry
            return None

        self.proposed = (new_start, new_end)
        self.pending = True
        self.live = self._geometry_for(new_start, new_end)
        if state is GestureState.DRAGGING:
            commit = GestureCommit("move", self.assignment.id, new_start, new_end)
            logger.debug("Assignment %s moved to %s..%s", self.assignment.id, new_start, new_end)
            self.intents.on_move(self.assignment.id, new_start, new_end)
        else:
            commit = GestureCommit("resize", self.assignment.id, new_start, new_end)
            logger.debug("Assignment %s resized to end %s", self.assignment.id, new_end)
            self.intents.on_resize(self.assignment.id, new_end)
        return commit

    def pointer_leave(self) -> None:
        """Pointer left the viewport or the release was lost: abandon the gesture."""
        if self.is_idle:
            return
        self._exit()
        self.live = self._confirmed_geometry

    cancel = pointer_leave

    def _geometry_for(self, start: date, end: date) -> BlockGeometry:
        return BlockGeometry(
            left=self.model.date_to_offset(start),
            width=(days_between(start, end) + 1) * self.model.column_width,
        )

    def confirm(self, assignment: Optional[Assignment] = None) -> None:
        """Adopt the server-confirmed record as the new source of truth."""
        if assignment is not None:
            self.assignment = assignment
        elif self.proposed is not None:
            self.assignment = self.assignment.with_dates(*self.proposed)
        self.pending = False
        self.proposed = None
        self._confirmed_geometry = self.model.block_geometry(self.assignment)
        if self.is_idle:
            self.live = self._confirmed_geometry

    def revert(self) -> None:
        """Restore the pre-gesture geometry after a rejected or lost commit."""
        self.pending = False
        self.proposed = None
        if self.is_idle:
            self.live = self._confirmed_geometry

    def sync(self, assignment: Assignment) -> None:
        """Pick up an externally changed record (e.g. after a form edit)."""
        if self.pending or not self.is_idle:
            return
        self.assignment = assignment
        self._confirmed_geometry = self.model.block_geometry(assignment)
        self.live = self._confirmed_geometry

    def rescale(self, model: CoordinateModel) -> None:
        """Re-render under a new scale or origin; stored dates are untouched."""
        if not self.is_idle:
            self.pointer_leave()
        self.model = model
        self._confirmed_geometry = model.block_geometry(self.assignment)
        if self.proposed is not None:
            self.live = self._geometry_for(*self.proposed)
        else:
            self.live = self._confirmed_geometry

    def context_menu(self) -> List[MenuItem]:
        return [MenuItem(EDIT), MenuItem(DELETE, destructive=True)]

    def activate_menu(self, label: str) -> None:
        if label == EDIT:
            self.intents.on_edit(self.assignment)
        elif label == DELETE:
            self.intents.on_delete(self.assignment.id)
        else:
            raise ValueError(f"unknown menu item '{label}'")

    def double_click(self) -> None:
        self.activate_menu(EDIT)
