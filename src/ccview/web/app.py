"""Flask app factory — creates and configures the JSON API application."""

from __future__ import annotations

from flask import Flask

from ccview.config import CcviewConfig


def create_app(config: CcviewConfig) -> Flask:
    """Create the Flask app with config values and registered routes.

    Args:
        config: CcviewConfig with claude_dir, default_days, etc.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    app.config["PROJECTS_DIR"] = config.projects_dir
    app.config["DEFAULT_DAYS"] = config.default_days

    from ccview.web.routes import bp

    app.register_blueprint(bp)

    return app
