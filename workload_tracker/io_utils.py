from __future__ import annotations

import json
import math
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .errors import InvalidIntervalError
from .models import (
    ASSIGNMENT_STATUSES,
    DEFAULT_COLUMN_WIDTHS,
    Assignment,
    CapacityThresholds,
    Employee,
    TrackerConfig,
)

_ASSIGNMENT_REQUIRED_COLUMNS = {
    "id",
    "project_id",
    "employee_id",
    "role",
    "start_date",
    "end_date",
    "allocation_percentage",
}


def parse_day(value: object, field_name: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, float) and math.isnan(value)):
        raise InvalidIntervalError(f"missing date in '{field_name}'")
    try:
        return dateparser.isoparse(str(value).strip()).date()
    except (ValueError, TypeError, OverflowError) as exc:
        raise InvalidIntervalError(f"invalid date in '{field_name}': {value}") from exc


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = sorted(col for col in required if col not in df.columns)
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _optional_str(value: object) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _parse_qualifications(value: object, name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(";") if part.strip())
    if isinstance(value, Sequence):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise ValueError(f"qualifications for {name} must be an array or ';'-separated string")


def load_employees(path: str | Path) -> List[Employee]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError("employees file must be a JSON array")
    employees: List[Employee] = []
    seen = set()
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("employee entries must be objects")
        employee_id = entry.get("id")
        if not isinstance(employee_id, int) or isinstance(employee_id, bool) or employee_id < 1:
            raise ValueError(f"employee id must be a positive integer: {employee_id!r}")
        if employee_id in seen:
            raise ValueError(f"duplicate employee id {employee_id}")
        seen.add(employee_id)
        name = entry.get("name")
        if not name or not isinstance(name, str):
            raise ValueError(f"employee {employee_id} requires a name")
        employees.append(
            Employee(
                id=employee_id,
                name=name,
                seniority_level=str(entry.get("seniority_level", "Mid") or "Mid"),
                qualifications=_parse_qualifications(entry.get("qualifications", ()), name),
            )
        )
    if not employees:
        raise ValueError("employees file is empty")
    return employees


def load_assignments(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    _require_columns(df, _ASSIGNMENT_REQUIRED_COLUMNS, "assignments.csv")
    for col in ["id", "project_id", "employee_id"]:
        try:
            df[col] = pd.to_numeric(df[col], downcast="integer")
        except ValueError as exc:
            raise ValueError(f"invalid numeric value in column '{col}'") from exc
    try:
        df["allocation_percentage"] = pd.to_numeric(df["allocation_percentage"])
    except ValueError as exc:
        raise ValueError("invalid numeric value in column 'allocation_percentage'") from exc
    out_of_range = (df["allocation_percentage"] < 0) | (df["allocation_percentage"] > 100)
    if out_of_range.any():
        raise ValueError("column 'allocation_percentage' must be within [0, 100]")
    if df["id"].duplicated().any():
        raise ValueError("assignments.csv contains duplicate ids")
    for col in ["start_date", "end_date"]:
        df[col] = df[col].map(lambda value, field=col: parse_day(value, field))
    if "status" not in df.columns:
        df["status"] = "active"
    df["status"] = df["status"].fillna("active").map(lambda value: str(value).strip().lower())
    unknown = sorted(set(df["status"]) - set(ASSIGNMENT_STATUSES))
    if unknown:
        raise ValueError(f"unsupported assignment status: {', '.join(unknown)}")
    for col in ["dr_status", "position_status", "project_name"]:
        if col not in df.columns:
            df[col] = None
    return df


def assignments_from_df(df: pd.DataFrame) -> List[Assignment]:
    assignments: List[Assignment] = []
    for row in df.itertuples(index=False):
        assignments.append(
            Assignment(
                id=int(row.id),
                project_id=int(row.project_id),
                employee_id=int(row.employee_id),
                role=str(row.role),
                start_date=row.start_date,
                end_date=row.end_date,
                allocation_percentage=float(row.allocation_percentage),
                status=row.status,
                dr_status=_optional_str(row.dr_status),
                position_status=_optional_str(row.position_status),
                project_name=_optional_str(row.project_name) or "",
            )
        )
    return assignments


def _parse_thresholds(raw: object) -> CapacityThresholds:
    if raw is None:
        return CapacityThresholds()
    if not isinstance(raw, dict):
        raise ValueError("thresholds must be an object")
    values: Dict[str, float] = {}
    for key, default in (("warning", 80.0), ("error", 100.0)):
        value = raw.get(key, default)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ValueError(f"thresholds.{key} must be a number")
        values[key] = float(value)
    return CapacityThresholds(**values)


def _parse_column_widths(raw: object) -> Dict[str, int]:
    widths = dict(DEFAULT_COLUMN_WIDTHS)
    if raw is None:
        return widths
    if not isinstance(raw, dict):
        raise ValueError("column_widths must be an object")
    for scale, value in raw.items():
        if scale not in DEFAULT_COLUMN_WIDTHS:
            raise ValueError(f"unsupported timeline scale '{scale}' in column_widths")
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"column_widths[{scale}] must be a positive number")
        widths[scale] = int(value)
    return widths


def config_from_dict(data: dict) -> TrackerConfig:
    if not isinstance(data, dict):
        raise ValueError("configuration must be a JSON object")
    thresholds = _parse_thresholds(data.get("thresholds"))
    default_scale = data.get("default_scale", "day")
    if default_scale not in DEFAULT_COLUMN_WIDTHS:
        raise ValueError(f"default_scale must be one of: {', '.join(DEFAULT_COLUMN_WIDTHS)}")
    allocation_step = data.get("allocation_step")
    if allocation_step is not None:
        if not isinstance(allocation_step, (int, float)) or isinstance(allocation_step, bool):
            raise ValueError("allocation_step must be a number if provided")
        if not (0 < allocation_step <= 100):
            raise ValueError("allocation_step must be in (0, 100]")
        allocation_step = float(allocation_step)
    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")
    return TrackerConfig(
        thresholds=thresholds,
        default_scale=default_scale,
        column_widths=_parse_column_widths(data.get("column_widths")),
        allocation_step=allocation_step,
        logging_level=logging_level,
    )


def load_config(path: str | Path) -> TrackerConfig:
    try:
        data = json.loads(Path(path).read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON in {path}: {exc}") from exc
    return config_from_dict(data)


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
