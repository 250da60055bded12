from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence


class BaseError(Exception):
    """Application error carrying an HTTP-style status code."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def errors(self) -> List[str]:
        return [self.message]

    def details(self) -> Dict[str, object]:
        return {}

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"errors": self.errors(), "type": type(self).__name__}
        details = self.details()
        if details:
            payload["details"] = details
        return payload


class PayloadValidationError(BaseError, ValueError):
    status_code = 400

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid payload")

    def errors(self) -> List[str]:
        return list(self.problems)


class InvalidIntervalError(BaseError, ValueError):
    status_code = 400


class AssignmentNotFoundError(BaseError, LookupError):
    status_code = 404

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} not found with identifier: {identifier}")
        self.resource = resource
        self.identifier = identifier


class CapacityExceededError(BaseError):
    status_code = 409

    def __init__(
        self,
        total: float,
        employee_id: int,
        peak_days: Optional[Sequence[date]] = None,
        message: Optional[str] = None,
    ) -> None:
        self.total = total
        self.employee_id = employee_id
        self.peak_days = list(peak_days or ())
        super().__init__(
            message or f"Total workload would exceed maximum capacity ({total:g}%)"
        )

    def details(self) -> Dict[str, object]:
        return {
            "employee_id": self.employee_id,
            "total_allocation": self.total,
            "peak_days": [day.isoformat() for day in self.peak_days],
        }


class CommitError(BaseError):
    """Raised by a transport when a gesture commit could not be delivered."""

    status_code = 503
