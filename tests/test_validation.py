from datetime import date

import pytest

from workload_tracker.errors import CapacityExceededError, PayloadValidationError
from workload_tracker.models import CapacityThresholds
from workload_tracker.validation import (
    AssignmentPayload,
    ValidateRequest,
    ValidateResponse,
    check_assignment,
    validate_assignment,
)

from conftest import make_assignment


class TestValidateAssignment:
    def test_proposed_allocation_over_capacity_is_error(self, yearly_assignments):
        status = validate_assignment(
            yearly_assignments, 1, date(2024, 4, 1), date(2024, 5, 1), 20
        )
        assert status.value == 110
        assert status.is_error
        assert not ValidateResponse.from_status(status).valid

    def test_window_with_single_assignment_is_normal(self, yearly_assignments):
        status = validate_assignment(
            yearly_assignments, 1, date(2024, 1, 10), date(2024, 2, 10), 15
        )
        assert status.value == 75
        assert not status.is_warning
        assert not status.is_error
        assert status.message == ""

    def test_editing_an_assignment_excludes_its_old_contribution(self, yearly_assignments):
        status = validate_assignment(
            yearly_assignments,
            1,
            date(2024, 3, 1),
            date(2024, 8, 31),
            30,
            exclude_assignment_id=2,
        )
        assert status.value == 90
        assert status.is_warning

    def test_custom_thresholds(self, yearly_assignments):
        status = validate_assignment(
            yearly_assignments,
            1,
            date(2024, 1, 10),
            date(2024, 1, 20),
            10,
            thresholds=CapacityThresholds(warning=50, error=70),
        )
        assert status.is_error


def test_check_assignment_raises_with_total_and_peak_days(yearly_assignments):
    with pytest.raises(CapacityExceededError) as excinfo:
        check_assignment(yearly_assignments, 1, date(2024, 2, 25), date(2024, 3, 2), 20)
    error = excinfo.value
    assert error.total == 110
    assert error.peak_days[0] == date(2024, 3, 1)
    assert error.to_dict()["details"]["total_allocation"] == 110


def test_check_assignment_lets_warnings_through(yearly_assignments):
    status = check_assignment(yearly_assignments, 1, date(2024, 1, 2), date(2024, 1, 3), 30)
    assert status.is_warning


class TestValidateRequest:
    def test_accepts_camel_case_aliases(self):
        request = ValidateRequest.from_payload(
            {
                "employeeId": 1,
                "startDate": "2024-04-01",
                "endDate": "2024-05-01",
                "allocationPercentage": 20,
                "currentAssignmentId": 3,
            }
        )
        assert request == ValidateRequest(1, date(2024, 4, 1), date(2024, 5, 1), 20.0, 3)

    def test_collects_every_problem(self):
        with pytest.raises(PayloadValidationError) as excinfo:
            ValidateRequest.from_payload(
                {"employee_id": 0, "start_date": "01/04/2024", "end_date": "2024-05-01", "allocation_percentage": 120}
            )
        problems = excinfo.value.problems
        assert "Valid employee ID is required" in problems
        assert "Start date must be in YYYY-MM-DD format" in problems
        assert "Allocation percentage must be between 0 and 100" in problems

    def test_rejects_inverted_dates(self):
        with pytest.raises(PayloadValidationError, match="End date must be after start date"):
            ValidateRequest.from_payload(
                {"employee_id": 1, "start_date": "2024-05-01", "end_date": "2024-04-01", "allocation_percentage": 10}
            )

    def test_allocation_step_is_opt_in(self):
        payload = {"employee_id": 1, "start_date": "2024-05-01", "end_date": "2024-05-02", "allocation_percentage": 25}
        assert ValidateRequest.from_payload(payload).allocation_percentage == 25
        with pytest.raises(PayloadValidationError, match="steps of 10%"):
            ValidateRequest.from_payload(payload, allocation_step=10)

    def test_evaluate_and_response_payload(self, yearly_assignments):
        request = ValidateRequest(1, date(2024, 4, 1), date(2024, 5, 1), 20)
        payload = request.evaluate(yearly_assignments).to_payload()
        assert payload == {
            "valid": False,
            "warning": False,
            "total": 110,
            "message": "Total workload would exceed maximum capacity (110%)",
        }
        normal = ValidateRequest(1, date(2024, 1, 1), date(2024, 1, 2), 10).evaluate(yearly_assignments)
        assert "message" not in normal.to_payload()


class TestAssignmentPayload:
    def _body(self, **overrides):
        body = {
            "project_id": 10,
            "employee_id": 1,
            "role": "Developer",
            "start_date": "2024-01-01",
            "end_date": "2024-01-31",
            "allocation_percentage": 50,
        }
        body.update(overrides)
        return body

    def test_builds_active_assignment(self):
        assignment = AssignmentPayload.from_payload(self._body()).build(5)
        assert assignment.id == 5
        assert assignment.status == "active"
        assert assignment.duration_days() == 31

    def test_create_requires_every_field(self):
        with pytest.raises(PayloadValidationError) as excinfo:
            AssignmentPayload.from_payload({"employee_id": 1})
        assert "Role must be at least 2 characters long" in excinfo.value.problems
        assert "Valid project ID is required" in excinfo.value.problems

    def test_partial_update_only_checks_present_fields(self):
        payload = AssignmentPayload.from_payload({"end_date": "2024-02-15"}, partial=True)
        original = make_assignment(3, date(2024, 1, 1), date(2024, 1, 31), 50)
        updated = payload.apply_to(original)
        assert updated.end_date == date(2024, 2, 15)
        assert updated.start_date == original.start_date
        assert updated.allocation_percentage == 50

    def test_optional_status_fields_are_checked(self):
        with pytest.raises(PayloadValidationError) as excinfo:
            AssignmentPayload.from_payload(self._body(dr_status=3, position_status="maybe", status="paused"))
        problems = excinfo.value.problems
        assert "DR status must be a string" in problems
        assert any(problem.startswith("Position status must be one of") for problem in problems)
        assert any(problem.startswith("Status must be one of") for problem in problems)
