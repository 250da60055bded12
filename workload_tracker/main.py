from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from . import engine
from .errors import InvalidIntervalError
from .io_utils import (
    assignments_from_df,
    ensure_directory,
    load_assignments,
    load_config,
    load_employees,
    parse_day,
    write_csv,
)
from .models import Assignment

logger = logging.getLogger(__name__)

# (argument name, file name under <project-dir>/input)
_INPUT_FILES = (
    ("employees", "employees.json"),
    ("assignments", "assignments.csv"),
    ("config", "config.json"),
)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Employee workload report (CSV/JSON in, CSV/markdown out)."
    )
    parser.add_argument(
        "--project-dir",
        help="Portfolio directory containing input/ and output/ subfolders",
    )
    parser.add_argument("--employees", help="Path to employees JSON (overrides project-dir default)")
    parser.add_argument("--assignments", help="Path to assignments CSV (overrides project-dir default)")
    parser.add_argument("--config", help="Path to configuration JSON file (overrides project-dir default)")
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated files (default: <project-dir>/output or ./out)",
    )
    parser.add_argument("--start", help="First day of the report (default: earliest assignment start)")
    parser.add_argument("--end", help="Last day of the report (default: latest assignment end)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any employee reaches the error threshold",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the over-allocation summary without writing output files",
    )
    return parser.parse_args(argv)


def _resolve_io_paths(args: argparse.Namespace) -> Tuple[Path, Path, Path, Path]:
    project_dir = Path(args.project_dir).resolve() if args.project_dir else None
    if project_dir and not project_dir.exists():
        raise ValueError(f"project directory not found: {project_dir}")
    input_dir = project_dir / "input" if project_dir else None

    def _pick(path_value: Optional[str], default_name: str) -> Optional[Path]:
        if path_value:
            return Path(path_value)
        if input_dir:
            return input_dir / default_name
        return None

    inputs = [
        (name, _pick(getattr(args, name), default_name))
        for name, default_name in _INPUT_FILES
    ]
    missing = [f"--{name}" for name, path in inputs if path is None]
    if missing:
        raise ValueError(
            f"missing required input paths: {', '.join(missing)} (or provide --project-dir)"
        )
    for name, path in inputs:
        if not path.exists():
            raise ValueError(f"{name} file not found at {path}")
    employees_path, assignments_path, config_path = (path for _, path in inputs)

    if args.outdir:
        outdir = Path(args.outdir)
    elif project_dir:
        outdir = project_dir / "output"
    else:
        outdir = Path("out")

    return employees_path, assignments_path, config_path, outdir


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _report_window(
    args: argparse.Namespace, assignments: List[Assignment]
) -> Tuple[date, date]:
    active = [assignment for assignment in assignments if assignment.is_active()]
    start = parse_day(args.start, "--start") if args.start else None
    end = parse_day(args.end, "--end") if args.end else None
    if start is None:
        if not active:
            raise ValueError("no active assignments; provide --start and --end")
        start = min(assignment.start_date for assignment in active)
    if end is None:
        if not active:
            raise ValueError("no active assignments; provide --start and --end")
        end = max(assignment.end_date for assignment in active)
    if end < start:
        raise InvalidIntervalError(f"report end {end} is before start {start}")
    return start, end


def _print_summary(summary: List[Dict[str, object]]) -> None:
    if not summary:
        print("Over-allocated employees: none")
        return
    print("Over-allocated employees:")
    for item in summary:
        days_label = "day" if item["days"] == 1 else "days"
        print(
            f"- {item['employee_id']} {item['employee_name']}: peak {item['peak_pct']:g}% "
            f"({item['first_day']} → {item['last_day']}, {item['days']} {days_label})"
        )


def _write_summary_markdown(summary: List[Dict[str, object]], outdir: Path) -> Path:
    path = outdir / "overallocations.md"
    lines: List[str] = ["# Over-allocated Employees", ""]
    if not summary:
        lines.append("No employee reaches the error threshold.")
    else:
        for item in summary:
            lines.append(f"- **{item['employee_id']} – {item['employee_name']}**")
            lines.append(f"  - Peak: {item['peak_pct']:g}%")
            lines.append(f"  - First day: {item['first_day']}")
            lines.append(f"  - Last day: {item['last_day']}")
            lines.append(f"  - Days over threshold: {item['days']}")
            lines.append("")
    path.write_text("\n".join(lines).strip() + "\n")
    return path


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        employees_path, assignments_path, config_path, outdir = _resolve_io_paths(args)
        cfg = load_config(config_path)
        _configure_logging(cfg.logging_level)
        employees = load_employees(employees_path)
        assignments = assignments_from_df(load_assignments(assignments_path))
        start, end = _report_window(args, assignments)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    logger.info(
        "Computing workload for %d employees from %s to %s", len(employees), start, end
    )
    report = engine.workload_frame(employees, assignments, start, end, cfg.thresholds)
    summary = engine.summarize_overallocations(report)

    if args.dry_run:
        _print_summary(summary)
    else:
        outdir_path = ensure_directory(outdir)
        report_path = outdir_path / "workload_report.csv"
        write_csv(report, report_path)
        summary_path = _write_summary_markdown(summary, outdir_path)
        print(f"Wrote {report_path}")
        print(f"Wrote {summary_path}")
        _print_summary(summary)

    if args.strict and summary:
        sys.exit(1)


if __name__ == "__main__":
    main()
