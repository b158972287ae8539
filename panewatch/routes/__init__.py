"""Flask routes for panewatch."""

from panewatch.routes.panes import panes_bp
from panewatch.routes.status import status_bp

__all__ = [
    "panes_bp",
    "status_bp",
]


def register_blueprints(app):
    """Register all blueprints with the Flask app.

    Args:
        app: The Flask application instance.
    """
    app.register_blueprint(panes_bp, url_prefix="/api")
    app.register_blueprint(status_bp, url_prefix="/api")
