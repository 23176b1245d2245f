from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from flask import Flask, current_app, flash, g, jsonify, redirect, render_template, request, url_for
from werkzeug.exceptions import BadRequest, HTTPException

from .actions import (
    check_database_connection,
    clear_test_data,
    create_form_builder,
    create_user,
    get_all_sections_with_specs,
    get_all_users,
    seed_test_data,
)
from .db import StorageClient, init_db
from .forms import FormBuilderDraft, split_full_name
from .validation import FormValidationError, validate_form_fields

NAVIGATION_ITEMS = [
    {"title": "Home", "url": "/", "endpoint": "index"},
    {"title": "Users", "url": "/users", "endpoint": "users"},
    {"title": "Settings", "url": "/settings", "endpoint": "settings"},
]

TRUTHY = {"1", "true", "yes", "on"}


def _db_path(app: Flask) -> Path:
    return Path(app.config["DATABASE_PATH"])


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in TRUTHY


def _configure_observability(app: Flask, app_name: str) -> None:
    app.config["APP_NAME"] = app_name
    level_name = os.environ.get("APP_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("form_builder").setLevel(level)


def _is_api_request() -> bool:
    return request.path.startswith("/api/")


def _configure_error_handlers(app: Flask) -> None:
    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest) -> Any:
        app.logger.warning("bad_request", extra={"path": request.path, "method": request.method, "error": str(error)})
        if _is_api_request():
            return jsonify(
                {"success": False, "error": "invalid request payload", "message": "Failed to process request"}
            ), 400
        return error

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Any:
        app.logger.warning(
            "http_error",
            extra={"path": request.path, "method": request.method, "status_code": error.code, "error": error.description},
        )
        if _is_api_request():
            return jsonify({"success": False, "error": error.description, "message": error.name}), error.code
        return error

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Any:
        app.logger.exception("unexpected_error", extra={"path": request.path, "method": request.method})
        if _is_api_request():
            return jsonify(
                {"success": False, "error": "Internal server error", "message": "Failed to process request"}
            ), 500
        raise error


def _configure_storage(app: Flask) -> None:
    @app.teardown_appcontext
    def close_storage(_: BaseException | None) -> None:
        client = g.pop("storage", None)
        if client is not None:
            client.close()


def _storage() -> StorageClient:
    if "storage" not in g:
        g.storage = StorageClient(current_app.config["DATABASE_PATH"]).connect()
    return g.storage


def _json_body() -> Any:
    payload = request.get_json(force=True, silent=False)
    return {} if payload is None else payload


def _status(result: dict[str, Any], ok: int, failed: int) -> int:
    return ok if result.get("success") else failed


def _apply_draft_action(draft: FormBuilderDraft, action: str) -> None:
    name, _, arguments = action.partition(":")
    indices = [int(part) for part in arguments.split(":") if part]
    if any(index < 0 for index in indices):
        raise BadRequest(f"negative position in form action: {action}")
    if name == "add_section":
        draft.append_section()
    elif name == "add_specification":
        draft.append_specification(indices[0])
    elif name == "remove_section":
        draft.remove_section(indices[0])
    elif name == "remove_specification":
        draft.remove_specification(indices[0], indices[1])
    else:
        raise BadRequest(f"unknown form action: {action}")


def create_app(database_path: str | None = None, *, atomic: bool | None = None) -> Flask:
    app = Flask(__name__, template_folder="templates")
    _configure_observability(app, "form-builder")
    _configure_error_handlers(app)
    app.config["DATABASE_PATH"] = database_path or os.environ.get("FORM_BUILDER_DB_PATH", "./data.db")
    app.config["FORM_BUILDER_ATOMIC"] = _env_flag("FORM_BUILDER_ATOMIC") if atomic is None else atomic
    app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-change-me")
    init_db(_db_path(app))
    _configure_storage(app)

    @app.context_processor
    def inject_navigation() -> dict[str, Any]:
        query = request.args.get("q", "").strip().lower()
        items = [item for item in NAVIGATION_ITEMS if query in item["title"].lower()]
        return {"navigation_items": items, "search_query": query, "app_name": app.config["APP_NAME"]}

    @app.get("/healthz")
    def healthz() -> Any:
        return jsonify({"status": "ok", "app": app.config["APP_NAME"]})

    @app.get("/")
    def index() -> str:
        saved = get_all_sections_with_specs(_storage())
        return render_template(
            "form_builder/index.html",
            draft=FormBuilderDraft(),
            errors={},
            sections=saved.get("data", []),
            load_error=saved.get("error"),
        )

    @app.post("/")
    def edit_form() -> Any:
        draft = FormBuilderDraft.from_form(request.form)
        action = request.form.get("action", "submit")
        errors: dict[str, str] = {}
        if action == "submit":
            storage = _storage()
            submitted = draft.submit(
                lambda form_fields: create_form_builder(storage, form_fields, atomic=app.config["FORM_BUILDER_ATOMIC"])
            )
            if submitted:
                app.logger.info("form_builder_submitted", extra={"source": "page"})
                flash(draft.message or "Saved")
                return redirect(url_for("index"))
            errors = draft.error_map()
        else:
            try:
                _apply_draft_action(draft, action)
            except (IndexError, ValueError) as error:
                raise BadRequest(f"invalid form action: {action}") from error

        saved = get_all_sections_with_specs(_storage())
        return render_template(
            "form_builder/index.html",
            draft=draft,
            errors=errors,
            sections=saved.get("data", []),
            load_error=saved.get("error"),
        )

    @app.route("/users", methods=["GET", "POST"])
    def users() -> Any:
        storage = _storage()
        message = None
        if request.method == "POST":
            first_name, last_name = split_full_name(request.form.get("name", ""))
            result = create_user(
                storage,
                {"email": request.form.get("email", ""), "firstName": first_name, "lastName": last_name},
            )
            if result["success"]:
                flash(result["message"])
                return redirect(url_for("users"))
            message = f"Failed: {result['error']}"
        listed = get_all_users(storage)
        return render_template("users/index.html", users=listed.get("data", []), message=message)

    @app.get("/settings")
    def settings() -> str:
        return render_template(
            "settings/index.html",
            database_path=app.config["DATABASE_PATH"],
            atomic=app.config["FORM_BUILDER_ATOMIC"],
            log_level=logging.getLevelName(app.logger.level),
        )

    @app.route("/test", methods=["GET", "POST"])
    def test_db_page() -> Any:
        result = None
        operation = None
        if request.method == "POST":
            operation = request.form.get("operation", "")
            handlers = {"test": check_database_connection, "seed": seed_test_data, "clear": clear_test_data}
            if operation not in handlers:
                raise BadRequest(f"unknown database operation: {operation}")
            result = handlers[operation](_storage())
            app.logger.info("test_db_operation", extra={"operation": operation, "success": result["success"]})
        return render_template("test/index.html", operation=operation, result=result)

    @app.post("/api/form-builder")
    def create_form_builder_api() -> Any:
        try:
            form_fields = validate_form_fields(_json_body())
        except FormValidationError as error:
            app.logger.info("form_builder_rejected", extra={"error_count": len(error.errors)})
            return jsonify(
                {
                    "success": False,
                    "error": "Validation failed",
                    "message": str(error),
                    "errors": error.to_dict(),
                }
            ), 400
        result = create_form_builder(_storage(), form_fields, atomic=app.config["FORM_BUILDER_ATOMIC"])
        return jsonify(result), _status(result, 201, 400)

    @app.get("/api/form-builder")
    def list_form_builder_api() -> Any:
        result = get_all_sections_with_specs(_storage())
        return jsonify(result), _status(result, 200, 400)

    @app.get("/api/test-db")
    def test_db_api() -> Any:
        result = check_database_connection(_storage())
        return jsonify(result), _status(result, 200, 500)

    @app.post("/api/test-db/seed")
    def seed_api() -> Any:
        result = seed_test_data(_storage())
        return jsonify(result), _status(result, 201, 500)

    @app.delete("/api/test-db/clear")
    def clear_api() -> Any:
        result = clear_test_data(_storage())
        return jsonify(result), _status(result, 200, 500)

    @app.post("/api/users")
    def create_user_api() -> Any:
        body = _json_body()
        if isinstance(body, dict) and "name" in body and "firstName" not in body:
            first_name, last_name = split_full_name(str(body.get("name") or ""))
            body = {**body, "firstName": first_name, "lastName": last_name}
            body.pop("name")
        result = create_user(_storage(), body)
        return jsonify(result), _status(result, 201, 400)

    @app.get("/api/users")
    def list_users_api() -> Any:
        result = get_all_users(_storage())
        return jsonify(result), _status(result, 200, 500)

    return app
