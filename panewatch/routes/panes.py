"""Pane routes.

Provides REST API endpoints for pane state:
- List all panes with their classified state
- Get one pane
- Attention ranking for a session
- Log-derived state for a working directory
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from panewatch.errors import SessionNotFoundError
from panewatch.services.priority_service import PriorityService
from panewatch.services.session_log import SessionLogReader, to_result
from panewatch.services.state_fusion import PaneMonitor
from panewatch.services.status_watcher import StatusWatcher, read_pane_statuses

logger = logging.getLogger(__name__)

panes_bp = Blueprint("panes", __name__)


def _get_monitor() -> PaneMonitor:
    return current_app.extensions["pane_monitor"]


@panes_bp.route("/panes", methods=["GET"])
def list_panes():
    """List every pane with its detected agent and state."""
    reports = _get_monitor().poll()
    logger.debug(f"[API] GET /panes - {len(reports)} panes")
    return jsonify({"panes": [report.model_dump(mode="json") for report in reports]})


@panes_bp.route("/panes/<path:target>", methods=["GET"])
def get_pane(target: str):
    """Get one pane by target ("session:window.pane")."""
    report = _get_monitor().poll_target(target)
    if report is None:
        return jsonify({"error": f"Pane not found: {target}"}), 404
    return jsonify(report.model_dump(mode="json"))


@panes_bp.route("/sessions/<session>/attention", methods=["GET"])
def session_attention(session: str):
    """Rank the panes of a session by how urgently they need attention.

    Returns:
        JSON with the ranking, the pane status file ranking and the single
        pane most in need.
    """
    config = current_app.extensions["config"]
    watcher: StatusWatcher = current_app.extensions["status_watcher"]
    priority: PriorityService = current_app.extensions["priority_service"]

    record = watcher.get(session)
    records = [record] if record is not None else []

    reports = [report for report in _get_monitor().poll() if report.session == session]
    pane_results = {report.target: report.result for report in reports}

    ranking = priority.resolve(records, pane_results)

    pane_statuses = read_pane_statuses(config.status.panes_dir)
    session_panes = [status for status in pane_statuses if status.session_label == session]
    pane_ranking = priority.rank_panes(session_panes)
    best = priority.best_pane(session_panes, session)

    return jsonify(
        {
            "session": session,
            "ranking": [entry.model_dump(mode="json") for entry in ranking],
            "pane_ranking": [entry.model_dump(mode="json") for entry in pane_ranking],
            "best_pane": best.model_dump(mode="json") if best else None,
        }
    )


@panes_bp.route("/sessions/<session>/log-state", methods=["GET"])
def session_log_state(session: str):
    """State reconstructed from the conversation log of a working directory."""
    cwd = request.args.get("cwd", "")
    if not cwd:
        return jsonify({"error": "Missing required query parameter: cwd"}), 400

    reader: SessionLogReader = current_app.extensions["session_log_reader"]
    try:
        state = reader.state_for_cwd(cwd)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(
        {
            "session": session,
            "state": state.model_dump(mode="json"),
            "activity": state.activity(),
            "status_type": state.status_type(),
            "result": to_result(state).model_dump(mode="json"),
        }
    )