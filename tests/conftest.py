"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest

from workload_tracker.models import Assignment, Employee


def make_assignment(
    assignment_id,
    start,
    end,
    allocation,
    employee_id=1,
    status="active",
    project_id=10,
    role="Developer",
):
    return Assignment(
        id=assignment_id,
        project_id=project_id,
        employee_id=employee_id,
        role=role,
        start_date=start,
        end_date=end,
        allocation_percentage=allocation,
        status=status,
    )


@pytest.fixture
def employee():
    return Employee(id=1, name="Ada Example", seniority_level="Senior", qualifications=("python",))


@pytest.fixture
def yearly_assignments():
    """60% for all of 2024 plus 30% from March to August."""
    return [
        make_assignment(1, date(2024, 1, 1), date(2024, 12, 31), 60),
        make_assignment(2, date(2024, 3, 1), date(2024, 8, 31), 30),
    ]
