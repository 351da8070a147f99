"""Flask application serving the stage tracker UI + JSON APIs."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, List, Optional

from flask import Blueprint, Flask, current_app, jsonify, request, send_from_directory

from .config import Settings, settings as default_settings
from .errors import StoreError, ValidationError
from .models import parse_stage_create, parse_task_text
from .schema import initialize
from .stages import StageRepository
from .stats import compute_stats
from .store import Store
from .tasks import TaskRepository
from .transfer import EXPORT_FILENAME, RESET_MESSAGE, export_all, import_all, reset_to_default

logger = logging.getLogger(__name__)

EXTENSION_KEY = "stagetrack"

ENDPOINTS = (
    "GET    /api/stages",
    "POST   /api/stages",
    "PUT    /api/stages/<id>",
    "DELETE /api/stages/<id>",
    "POST   /api/stages/<id>/tasks",
    "PUT    /api/tasks/<id>/toggle",
    "PUT    /api/tasks/<id>",
    "DELETE /api/tasks/<id>",
    "GET    /api/stats",
    "GET    /api/export",
    "POST   /api/import",
    "POST   /api/reset",
)

api = Blueprint("api", __name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _store() -> Store:
    return current_app.extensions[EXTENSION_KEY]


def _json_body(default: Any = None) -> Any:
    payload = request.get_json(force=True, silent=True)
    if payload is None:
        if request.get_data(cache=True).strip():
            raise ValidationError("Malformed JSON body")
        return default
    return payload


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

@api.get("/api/stages")
def api_list_stages():
    return jsonify(StageRepository(_store()).list_with_tasks())


@api.post("/api/stages")
def api_create_stage():
    fields = parse_stage_create(_json_body())
    stage = StageRepository(_store()).create(fields)
    return jsonify(stage)


@api.put("/api/stages/<int:stage_id>")
def api_update_stage(stage_id: int):
    changes = StageRepository(_store()).update(stage_id, _json_body(default={}))
    return jsonify({"success": True, "changes": changes})


@api.delete("/api/stages/<int:stage_id>")
def api_delete_stage(stage_id: int):
    changes = StageRepository(_store()).delete(stage_id)
    return jsonify({"success": True, "changes": changes})


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

@api.post("/api/stages/<int:stage_id>/tasks")
def api_add_task(stage_id: int):
    text = parse_task_text(_json_body())
    return jsonify(TaskRepository(_store()).add(stage_id, text))


@api.put("/api/tasks/<int:task_id>/toggle")
def api_toggle_task(task_id: int):
    completed = TaskRepository(_store()).toggle(task_id)
    return jsonify({"success": True, "completed": completed})


@api.delete("/api/tasks/<int:task_id>")
def api_delete_task(task_id: int):
    changes = TaskRepository(_store()).delete(task_id)
    return jsonify({"success": True, "changes": changes})


@api.put("/api/tasks/<int:task_id>")
def api_update_task(task_id: int):
    text = parse_task_text(_json_body())
    TaskRepository(_store()).update_text(task_id, text)
    return jsonify({"success": True})


# ---------------------------------------------------------------------------
# Statistics and bulk transfer
# ---------------------------------------------------------------------------

@api.get("/api/stats")
def api_stats():
    return jsonify(compute_stats(_store()))


@api.get("/api/export")
def api_export():
    response = jsonify(export_all(_store()))
    response.headers["Content-Disposition"] = f'attachment; filename="{EXPORT_FILENAME}"'
    return response


@api.post("/api/import")
def api_import():
    imported = import_all(_store(), _json_body())
    return jsonify({"success": True, "imported": imported})


@api.post("/api/reset")
def api_reset():
    reset_to_default(_store())
    return jsonify({"success": True, "message": RESET_MESSAGE})


@api.get("/__health")
def healthcheck() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation_error(exc: ValidationError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(StoreError)
    def _store_error(exc: StoreError):
        logger.error("Database error while handling %s %s", request.method, request.path, exc_info=exc)
        return jsonify({"error": str(exc)}), 500


def _allow_cross_origin(response):
    if request.path.startswith("/api/"):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


def create_app(store: Store, public_dir: Optional[str] = None, init_db: bool = True) -> Flask:
    """Build the Flask app around an already opened store."""
    static_folder = Path(public_dir or default_settings.public_dir).resolve()
    app = Flask(__name__, static_folder=str(static_folder), static_url_path="")
    app.extensions[EXTENSION_KEY] = store
    if init_db:
        initialize(store)

    app.register_blueprint(api)
    _register_error_handlers(app)
    app.after_request(_allow_cross_origin)

    @app.get("/")
    def home():
        return send_from_directory(app.static_folder, "index.html")

    return app


def _log_banner(host: str, port: int, db_path: str) -> None:
    lines = [
        "Tender Project Management System",
        f"Server running at: http://{host}:{port}",
        f"Database: {db_path}",
        "API Endpoints:",
        *(f"  {endpoint}" for endpoint in ENDPOINTS),
    ]
    logger.info("\n".join(lines))


def run_server(config: Settings) -> None:
    store = Store(config.db_path)
    try:
        app = create_app(store, public_dir=config.public_dir)
        _log_banner(config.host, config.port, config.db_path)
        app.run(host=config.host, port=config.port)
    finally:
        store.close()
        logger.info("Database connection closed.")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Stage tracker Flask server")
    parser.add_argument("--port", type=int, default=default_settings.port, help="Port to bind")
    parser.add_argument("--host", default=default_settings.host, help="Host to bind")
    parser.add_argument("--db", default=default_settings.db_path, help="SQLite database path")
    parser.add_argument("--public-dir", default=default_settings.public_dir, help="Directory with static UI files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=default_settings.log_level)
    config = Settings(
        db_path=args.db,
        host=args.host,
        port=args.port,
        public_dir=args.public_dir,
        log_level=default_settings.log_level,
    )
    run_server(config)


if __name__ == "__main__":  # pragma: no cover
    main()
