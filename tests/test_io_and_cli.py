import json
from datetime import date

import pandas as pd
import pytest

from workload_tracker import main as cli
from workload_tracker.errors import InvalidIntervalError
from workload_tracker.io_utils import (
    assignments_from_df,
    config_from_dict,
    load_assignments,
    load_employees,
    parse_day,
)


def _write_portfolio(root, rows, config=None):
    input_dir = root / "input"
    input_dir.mkdir(parents=True)
    (input_dir / "employees.json").write_text(
        json.dumps(
            [
                {"id": 1, "name": "Ada", "seniority_level": "Senior", "qualifications": "python;sql"},
                {"id": 2, "name": "Grace", "qualifications": ["cobol"]},
            ]
        )
    )
    pd.DataFrame(rows).to_csv(input_dir / "assignments.csv", index=False)
    (input_dir / "config.json").write_text(json.dumps(config or {"logging_level": "WARNING"}))
    return root


ROWS = [
    {"id": 1, "project_id": 10, "employee_id": 1, "role": "Dev", "start_date": "2024-01-01",
     "end_date": "2024-01-10", "allocation_percentage": 60, "status": "active"},
    {"id": 2, "project_id": 11, "employee_id": 1, "role": "Dev", "start_date": "2024-01-05",
     "end_date": "2024-01-06", "allocation_percentage": 50, "status": "active"},
    {"id": 3, "project_id": 12, "employee_id": 2, "role": "QA", "start_date": "2024-01-01",
     "end_date": "2024-01-10", "allocation_percentage": 90, "status": "cancelled"},
]


def test_parse_day():
    assert parse_day("2024-02-29") == date(2024, 2, 29)
    with pytest.raises(InvalidIntervalError):
        parse_day("2024-02-30")
    with pytest.raises(InvalidIntervalError):
        parse_day(None)


def test_load_employees_and_assignments(tmp_path):
    _write_portfolio(tmp_path, ROWS)
    employees = load_employees(tmp_path / "input" / "employees.json")
    assert employees[0].qualifications == ("python", "sql")
    assert employees[1].seniority_level == "Mid"

    assignments = assignments_from_df(load_assignments(tmp_path / "input" / "assignments.csv"))
    assert [a.start_date for a in assignments][:2] == [date(2024, 1, 1), date(2024, 1, 5)]
    assert assignments[2].status == "cancelled"
    assert assignments[0].dr_status is None


def test_load_assignments_rejects_bad_rows(tmp_path):
    bad = [dict(ROWS[0], allocation_percentage=150)]
    _write_portfolio(tmp_path, bad)
    with pytest.raises(ValueError, match="allocation_percentage"):
        load_assignments(tmp_path / "input" / "assignments.csv")


def test_config_from_dict():
    cfg = config_from_dict(
        {"thresholds": {"warning": 70, "error": 90}, "column_widths": {"day": 30}, "allocation_step": 10}
    )
    assert cfg.thresholds.warning == 70
    assert cfg.column_width_for("day") == 30
    assert cfg.column_width_for("month") == 240
    assert cfg.allocation_step == 10.0
    with pytest.raises(ValueError):
        config_from_dict({"default_scale": "year"})
    with pytest.raises(ValueError):
        config_from_dict({"thresholds": {"warning": 95, "error": 90}})


def test_cli_writes_report_and_summary(tmp_path, capsys):
    _write_portfolio(tmp_path, ROWS)
    cli.main(["--project-dir", str(tmp_path)])

    report = pd.read_csv(tmp_path / "output" / "workload_report.csv")
    assert len(report) == 2 * 10
    ada = report[report["employee_id"] == 1]
    assert ada["total_pct"].max() == 110
    assert set(report[report["employee_id"] == 2]["status"]) == {"normal"}

    summary = (tmp_path / "output" / "overallocations.md").read_text()
    assert "Ada" in summary
    assert "Peak: 110%" in summary
    assert "Ada: peak 110%" in capsys.readouterr().out


def test_cli_strict_exits_on_overallocation(tmp_path):
    _write_portfolio(tmp_path, ROWS)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--project-dir", str(tmp_path), "--strict", "--dry-run"])
    assert excinfo.value.code == 1
    assert not (tmp_path / "output").exists()


def test_cli_missing_inputs_exit_with_usage_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--project-dir", str(tmp_path / "nowhere")])
    assert excinfo.value.code == 2
    assert "project directory not found" in capsys.readouterr().err


def test_cli_names_every_missing_input(tmp_path, capsys):
    _write_portfolio(tmp_path, ROWS)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--employees", str(tmp_path / "input" / "employees.json")])
    assert excinfo.value.code == 2
    assert "--assignments, --config" in capsys.readouterr().err


def test_cli_explicit_paths_without_project_dir(tmp_path):
    _write_portfolio(tmp_path, ROWS)
    input_dir = tmp_path / "input"
    cli.main(
        [
            "--employees", str(input_dir / "employees.json"),
            "--assignments", str(input_dir / "assignments.csv"),
            "--config", str(input_dir / "config.json"),
            "--outdir", str(tmp_path / "reports"),
            "--start", "2024-01-05",
            "--end", "2024-01-06",
        ]
    )
    report = pd.read_csv(tmp_path / "reports" / "workload_report.csv")
    assert len(report) == 2 * 2
