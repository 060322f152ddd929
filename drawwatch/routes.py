from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from .schemas import CheckResponse
from .service import handle_scheduled_event

bp = Blueprint("trigger", __name__)


@bp.get("/health")
def health():
    return jsonify({"status": "ok"})


@bp.route("/run", methods=["GET", "POST"])
def run_check():
    result = handle_scheduled_event(current_app.config.get("DRAWWATCH_ENV_FILE"))
    current_app.logger.info("Check finished with %s: %s", result.status_code, result.body)
    return jsonify(CheckResponse.from_result(result).model_dump()), result.status_code
