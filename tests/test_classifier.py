import pytest

from workload_tracker.classifier import classify, format_workload
from workload_tracker.models import CapacityThresholds, Severity


@pytest.mark.parametrize(
    "total, severity",
    [(0, Severity.NORMAL), (79.9, Severity.NORMAL), (80, Severity.WARNING), (99, Severity.WARNING),
     (100, Severity.ERROR), (130, Severity.ERROR)],
)
def test_tiers_with_default_thresholds(total, severity):
    status = classify(total)
    assert status.severity is severity
    assert status.is_error == (severity is Severity.ERROR)
    assert status.is_warning == (severity is Severity.WARNING)


def test_severity_is_monotone_in_total():
    thresholds = CapacityThresholds(warning=50, error=75)
    previous = Severity.NORMAL
    for step in range(0, 200):
        current = classify(step / 2, thresholds).severity
        assert current >= previous
        previous = current


def test_messages_by_tier():
    assert classify(40).message == ""
    assert classify(85).message == "High workload detected (85%)"
    assert classify(110).message == "Workload exceeds maximum capacity (110%)"
    assert classify(85, proposed=True).message == "Assignment would result in high workload (85%)"
    assert classify(110, proposed=True).message == "Total workload would exceed maximum capacity (110%)"


def test_rejects_negative_and_nan_totals():
    with pytest.raises(ValueError):
        classify(-1)
    with pytest.raises(ValueError):
        classify(float("nan"))


def test_thresholds_must_be_ordered():
    with pytest.raises(ValueError):
        CapacityThresholds(warning=90, error=80)


def test_format_workload():
    assert format_workload(80.0) == "80"
    assert format_workload(82.5) == "82.5"
    assert format_workload(33.333) == "33.3"
