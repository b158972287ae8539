"""Hook status routes."""

import logging

from flask import Blueprint, current_app, jsonify

from panewatch.services.status_watcher import StatusWatcher

logger = logging.getLogger(__name__)

status_bp = Blueprint("status", __name__)


def _get_watcher() -> StatusWatcher:
    return current_app.extensions["status_watcher"]


@status_bp.route("/status", methods=["GET"])
def list_statuses():
    """All hook status records, keyed by session name."""
    records = _get_watcher().get_all()
    return jsonify(
        {
            "statuses": {
                session: {
                    **record.model_dump(mode="json"),
                    "needs_attention": record.needs_attention(),
                }
                for session, record in records.items()
            }
        }
    )


@status_bp.route("/status/<path:session>", methods=["GET"])
def get_status(session: str):
    """Hook status of one session."""
    record = _get_watcher().get(session)
    if record is None:
        return jsonify({"error": f"No status for session: {session}"}), 404
    return jsonify({**record.model_dump(mode="json"), "needs_attention": record.needs_attention()})
