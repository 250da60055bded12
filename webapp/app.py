from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from flask import Flask, jsonify, request

from workload_tracker.classifier import classify
from workload_tracker.engine import daily_workload, peak_days, workload_over_range
from workload_tracker.errors import BaseError, PayloadValidationError
from workload_tracker.io_utils import (
    assignments_from_df,
    load_assignments,
    load_config,
    load_employees,
    parse_day,
)
from workload_tracker.models import TrackerConfig
from workload_tracker.timeline import render_timeline
from workload_tracker.validation import AssignmentPayload, ValidateRequest

from .store import AssignmentStore

logger = logging.getLogger(__name__)


def _resolve_config() -> TrackerConfig:
    env_value = os.getenv("WORKLOAD_CONFIG")
    if env_value:
        return load_config(Path(env_value).expanduser().resolve())
    return TrackerConfig()


def _seed_store(store: AssignmentStore, project_dir: Path) -> None:
    input_dir = project_dir / "input"
    employees_path = input_dir / "employees.json"
    assignments_path = input_dir / "assignments.csv"
    if employees_path.is_file():
        for employee in load_employees(employees_path):
            store.add_employee(employee)
    if assignments_path.is_file():
        store.load(assignments_from_df(load_assignments(assignments_path)))
    logger.info("Seeded store from %s", project_dir)


def _error_response(exc: BaseError) -> Tuple[object, int]:
    return jsonify(exc.to_dict()), exc.status_code


def _json_body() -> Dict[str, object]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PayloadValidationError(["request body must be a JSON object"])
    return data


def _assignments_payload(assignments) -> List[Dict[str, object]]:
    return [assignment.to_dict() for assignment in assignments]


def create_app(
    config: Optional[TrackerConfig] = None,
    store: Optional[AssignmentStore] = None,
) -> Flask:
    app = Flask(__name__)
    cfg = config or _resolve_config()
    assignment_store = store or AssignmentStore(cfg.thresholds)
    project_dir_value = os.getenv("WORKLOAD_PROJECT_DIR")
    if store is None and project_dir_value:
        _seed_store(assignment_store, Path(project_dir_value).expanduser().resolve())
    app.config["TRACKER_CONFIG"] = cfg
    app.config["ASSIGNMENT_STORE"] = assignment_store

    @app.post("/api/assignments/validate")
    def validate_assignment():
        try:
            validate_request = ValidateRequest.from_payload(
                _json_body(), allocation_step=cfg.allocation_step
            )
        except BaseError as exc:
            return _error_response(exc)
        response = validate_request.evaluate(assignment_store.snapshot(), cfg.thresholds)
        return jsonify(response.to_payload())

    @app.post("/api/assignments")
    def create_assignment():
        try:
            payload = AssignmentPayload.from_payload(
                _json_body(), allocation_step=cfg.allocation_step
            )
            assignment = assignment_store.create(payload)
        except BaseError as exc:
            return _error_response(exc)
        return jsonify(assignment.to_dict()), 201

    @app.get("/api/assignments/<int:assignment_id>")
    def get_assignment(assignment_id: int):
        try:
            assignment = assignment_store.get(assignment_id)
        except BaseError as exc:
            return _error_response(exc)
        return jsonify(assignment.to_dict())

    @app.put("/api/assignments/<int:assignment_id>")
    def update_assignment(assignment_id: int):
        try:
            payload = AssignmentPayload.from_payload(
                _json_body(), partial=True, allocation_step=cfg.allocation_step
            )
            assignment = assignment_store.update(assignment_id, payload)
        except BaseError as exc:
            return _error_response(exc)
        return jsonify(assignment.to_dict())

    @app.delete("/api/assignments/<int:assignment_id>")
    def delete_assignment(assignment_id: int):
        try:
            assignment = assignment_store.retire(assignment_id)
        except BaseError as exc:
            return _error_response(exc)
        return jsonify(assignment.to_dict())

    @app.get("/api/employees/<int:employee_id>/assignments")
    def employee_assignments(employee_id: int):
        try:
            assignment_store.get_employee(employee_id)
        except BaseError as exc:
            return _error_response(exc)
        return jsonify(_assignments_payload(assignment_store.list_for_employee(employee_id)))

    @app.get("/api/employees/<int:employee_id>/workload")
    def employee_workload(employee_id: int):
        """Daily workload breakdown plus the peak for the requested window."""
        try:
            employee = assignment_store.get_employee(employee_id)
            start = parse_day(request.args.get("start_date"), "start_date")
            end = parse_day(request.args.get("end_date"), "end_date")
            snapshot = assignment_store.snapshot()
            peak = workload_over_range(snapshot, employee_id, start, end)
        except BaseError as exc:
            return _error_response(exc)
        frame = daily_workload(snapshot, employee_id, start, end)
        status = classify(peak, cfg.thresholds)
        days = [
            {
                "date": row.date.isoformat(),
                "total_pct": row.total_pct,
                "assignment_ids": list(row.assignment_ids),
            }
            for row in frame.itertuples(index=False)
        ]
        return jsonify(
            {
                "employee_id": employee.id,
                "employee_name": employee.name,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "peak_pct": peak,
                "peak_days": [day.isoformat() for day in peak_days(snapshot, employee_id, start, end)],
                "status": status.severity.label,
                "message": status.message,
                "days": days,
            }
        )

    @app.get("/api/timeline")
    def timeline():
        assignments = assignment_store.snapshot()
        employee_filter = request.args.get("employee_id")
        if employee_filter is not None:
            try:
                employee_id = int(employee_filter)
            except ValueError:
                return jsonify({"errors": ["employee_id must be an integer"]}), 400
            assignments = [a for a in assignments if a.employee_id == employee_id]
        payload = render_timeline(
            request.args.get("start_date"),
            request.args.get("end_date"),
            request.args.get("scale", cfg.default_scale),
            [a for a in assignments if a.is_active()],
            today=date.today(),
            column_widths=cfg.column_widths,
        )
        if "error" in payload:
            return jsonify({"errors": [payload["error"]]}), 400
        return jsonify(payload)

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
