from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .controller import AssignmentIntents, DragResizeController, PointerHub, PointerSource
from .errors import BaseError, CapacityExceededError, CommitError
from .models import DEFAULT_THRESHOLDS, Assignment, CapacityThresholds, WorkloadStatus
from .timeline import BlockGeometry, Scale, TimelineView
from .validation import validate_assignment

logger = logging.getLogger(__name__)

# Returns the server-confirmed record, or None when the commit is still in
# flight and will be completed through ``complete_commit``/``fail_commit``.
SubmitFn = Callable[[Assignment], Optional[Assignment]]


@dataclass(frozen=True)
class RenderedBlock:
    assignment: Assignment
    geometry: BlockGeometry
    pending: bool


class TimelineBoard:
    """Client-side timeline: view state, gesture controllers and commit handling.

    Assignments held here are the client's snapshot and are only replaced by
    records the server confirmed.
    """

    def __init__(
        self,
        view: TimelineView,
        assignments: Iterable[Assignment],
        submit: SubmitFn,
        thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
        pointer_source: Optional[PointerSource] = None,
        on_edit: Optional[Callable[[Assignment], None]] = None,
        on_delete: Optional[Callable[[int], None]] = None,
        block_on_client_error: bool = False,
    ) -> None:
        self.view = view
        self.submit = submit
        self.thresholds = thresholds
        self.pointer_source = pointer_source or PointerHub()
        self.on_edit = on_edit
        self.on_delete = on_delete
        self.block_on_client_error = block_on_client_error
        self.snapshot: Dict[int, Assignment] = {}
        self.controllers: Dict[int, DragResizeController] = {}
        self.last_status: Optional[WorkloadStatus] = None
        self.last_error: Optional[BaseError] = None
        self.warnings: List[str] = []
        self.refresh(assignments)

    def _intents(self) -> AssignmentIntents:
        return AssignmentIntents(
            on_move=self.handle_move,
            on_resize=self.handle_resize,
            on_edit=self._edit,
            on_delete=self._delete,
        )

    def refresh(self, assignments: Iterable[Assignment]) -> None:
        """Replace the snapshot with fresh server data."""
        fresh = {assignment.id: assignment for assignment in assignments}
        for assignment_id in list(self.controllers):
            controller = self.controllers[assignment_id]
            if assignment_id in fresh or controller.pending:
                continue
            if not controller.is_idle:
                controller.pointer_leave()
            del self.controllers[assignment_id]
        model = self.view.model()
        for assignment_id, assignment in fresh.items():
            controller = self.controllers.get(assignment_id)
            if controller is None:
                self.controllers[assignment_id] = DragResizeController(
                    assignment, model, self._intents(), self.pointer_source
                )
            else:
                controller.sync(assignment)
        self.snapshot = fresh

    def controller(self, assignment_id: int) -> DragResizeController:
        return self.controllers[assignment_id]

    def precheck(self, candidate: Assignment) -> WorkloadStatus:
        return validate_assignment(
            self.snapshot.values(),
            candidate.employee_id,
            candidate.start_date,
            candidate.end_date,
            candidate.allocation_percentage,
            candidate.id,
            self.thresholds,
        )

    def preview(self, assignment_id: int) -> WorkloadStatus:
        """Advisory status for the live (uncommitted) geometry of a block."""
        controller = self.controllers[assignment_id]
        start, end = controller.preview_dates()
        return self.precheck(controller.assignment.with_dates(start, end))

    def _current(self, assignment_id: int) -> Assignment:
        if assignment_id in self.snapshot:
            return self.snapshot[assignment_id]
        return self.controllers[assignment_id].assignment

    def handle_move(self, assignment_id: int, new_start, new_end) -> None:
        candidate = self._current(assignment_id).with_dates(new_start, new_end)
        self._commit(candidate)

    def handle_resize(self, assignment_id: int, new_end) -> None:
        candidate = self._current(assignment_id).with_end(new_end)
        self._commit(candidate)

    def _commit(self, candidate: Assignment) -> None:
        status = self.precheck(candidate)
        self.last_status = status
        self.last_error = None
        if status.is_warning:
            logger.warning("Assignment %s: %s", candidate.id, status.message)
            self.warnings.append(status.message)
        if status.is_error and self.block_on_client_error:
            self.fail_commit(
                candidate.id,
                CapacityExceededError(status.value, candidate.employee_id, message=status.message),
            )
            return
        try:
            confirmed = self.submit(candidate)
        except BaseError as exc:
            self.fail_commit(candidate.id, exc)
            return
        except Exception as exc:
            # Transport failures must still roll the block back.
            self.fail_commit(candidate.id, CommitError(str(exc) or type(exc).__name__))
            return
        if confirmed is not None:
            self.complete_commit(confirmed)

    def complete_commit(self, confirmed: Assignment) -> None:
        self.snapshot[confirmed.id] = confirmed
        self.controllers[confirmed.id].confirm(confirmed)

    def fail_commit(self, assignment_id: int, error: BaseError) -> None:
        logger.warning("Commit of assignment %s failed: %s", assignment_id, error)
        self.last_error = error
        self.controllers[assignment_id].revert()

    def _edit(self, assignment: Assignment) -> None:
        if self.on_edit is not None:
            self.on_edit(assignment)

    def _delete(self, assignment_id: int) -> None:
        if self.on_delete is not None:
            self.on_delete(assignment_id)

    def _rerender(self) -> None:
        model = self.view.model()
        for controller in self.controllers.values():
            controller.rescale(model)

    def set_scale(self, scale: Scale | str) -> None:
        self.view.set_scale(scale)
        self._rerender()

    def previous_month(self) -> None:
        self.view.previous_month()
        self._rerender()

    def next_month(self) -> None:
        self.view.next_month()
        self._rerender()

    def blocks(self) -> List[RenderedBlock]:
        return [
            RenderedBlock(controller.assignment, controller.live, controller.pending)
            for controller in self.controllers.values()
        ]
