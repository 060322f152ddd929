from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .routes import bp as trigger_bp


def create_app(dotenv_path: Optional[str] = None) -> Flask:
    """HTTP trigger for schedulers that call a URL instead of running the CLI."""
    app = Flask(__name__)
    app.config["DRAWWATCH_ENV_FILE"] = dotenv_path
    app.register_blueprint(trigger_bp)

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": str(exc)}), 500

    return app
