"""Flask application factory for panewatch.

This module creates and configures the Flask application, wiring together
the services:

- ConfigService: Configuration loading
- TmuxBackend: Pane listing and capture
- AgentRegistry: Agent detection with a TTL cache
- SessionLogReader / ThreadReader: Agent log state
- PaneMonitor: Per-pane state fusion
- StatusWatcher / PriorityService: Hook status and attention ranking

Usage:
    from panewatch.app import create_app
    app = create_app()
    app.run(port=5050)
"""

import logging
from datetime import timedelta

from flask import Flask, jsonify

from panewatch.backends.base import PaneSource
from panewatch.backends.tmux import get_tmux_backend
from panewatch.models import AppConfig
from panewatch.routes import register_blueprints
from panewatch.services import (
    AgentRegistry,
    DetectionCache,
    PaneMonitor,
    PriorityService,
    SessionLogReader,
    StatusWatcher,
    ThreadReader,
    get_config_service,
)

logger = logging.getLogger(__name__)


def create_app(config_path: str = "config.yaml", backend: PaneSource | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_path: Path to the configuration file.
        backend: Pane source to use. Defaults to tmux.

    Returns:
        Configured Flask application.
    """
    # Load configuration
    config_service = get_config_service(config_path)
    config = config_service.get_config()

    app = Flask(__name__)
    app.config["TESTING"] = False

    # Store services on app for access in routes
    app.extensions["config"] = config
    app.extensions["config_service"] = config_service

    _init_services(app, config, backend)

    register_blueprints(app)

    @app.route("/")
    def index():
        return jsonify(
            {
                "name": "panewatch",
                "backend": app.extensions["pane_source"].backend_name,
                "scan_interval": config.scan_interval,
            }
        )

    return app


def _init_services(app: Flask, config: AppConfig, backend: PaneSource | None) -> None:
    """Initialize all services and wire them together.

    Args:
        app: Flask application.
        config: Application configuration.
        backend: Pane source, or None for the tmux singleton.
    """
    source = backend or get_tmux_backend()
    app.extensions["pane_source"] = source

    cache = DetectionCache(ttl=timedelta(seconds=config.detection.ttl_seconds))
    registry = AgentRegistry(config=config.detection, cache=cache)
    app.extensions["agent_registry"] = registry

    log_reader = SessionLogReader(config.session_log)
    app.extensions["session_log_reader"] = log_reader

    thread_reader = ThreadReader(config.narrative_threads)
    app.extensions["thread_reader"] = thread_reader

    app.extensions["pane_monitor"] = PaneMonitor(
        source=source,
        registry=registry,
        log_reader=log_reader,
        thread_reader=thread_reader,
        capture_lines=config.capture_lines,
    )

    app.extensions["status_watcher"] = StatusWatcher(config.status.status_dir)
    app.extensions["priority_service"] = PriorityService(
        fresh_after=timedelta(seconds=config.status.fresh_seconds),
    )

    logger.info(f"Services initialized (backend: {source.backend_name})")


def main():
    """Run the Flask application."""
    config = get_config_service().get_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app()

    logger.info(f"Starting panewatch on port {config.port}")
    app.run(host="0.0.0.0", port=config.port, debug=config.debug, threaded=True)


if __name__ == "__main__":
    main()
