from __future__ import annotations

import math

from .models import DEFAULT_THRESHOLDS, CapacityThresholds, Severity, WorkloadStatus

__all__ = ["Severity", "classify", "format_workload"]


def format_workload(value: float) -> str:
    """Render a percentage with at most one decimal, dropping a trailing .0."""
    text = f"{float(value):.1f}"
    return text[:-2] if text.endswith(".0") else text


def _message(severity: Severity, total: float, proposed: bool) -> str:
    label = format_workload(total)
    if severity is Severity.ERROR:
        if proposed:
            return f"Total workload would exceed maximum capacity ({label}%)"
        return f"Workload exceeds maximum capacity ({label}%)"
    if severity is Severity.WARNING:
        if proposed:
            return f"Assignment would result in high workload ({label}%)"
        return f"High workload detected ({label}%)"
    return ""


def classify(
    total: float,
    thresholds: CapacityThresholds = DEFAULT_THRESHOLDS,
    proposed: bool = False,
) -> WorkloadStatus:
    """Map a total allocation onto normal, warning or error.

    ``proposed`` switches the message wording to the conditional form used
    while a new or changed assignment is being evaluated.
    """
    total = float(total)
    if math.isnan(total) or total < 0:
        raise ValueError(f"workload total must be a non-negative number, got {total}")
    is_error = total >= thresholds.error
    is_warning = not is_error and total >= thresholds.warning
    if is_error:
        severity = Severity.ERROR
    elif is_warning:
        severity = Severity.WARNING
    else:
        severity = Severity.NORMAL
    return WorkloadStatus(
        value=total,
        is_warning=is_warning,
        is_error=is_error,
        message=_message(severity, total, proposed),
    )
