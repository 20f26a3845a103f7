import os

from flask import Flask, jsonify, render_template, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from coursebook.api.courses import courses_bp
from coursebook.api.pages import pages_bp
from coursebook.core.config import get_cors_origins
from coursebook.core.errors import AppError, handle_exception
from coursebook.core.logging import api_logger
from coursebook.models.schemas import HealthResponse

ROOT_DIR = os.path.join(os.path.dirname(__file__), "../..")


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def _error_page(message: str, status_code: int):
    return (
        render_template("error.html", message=message, status_code=status_code),
        status_code,
    )


def create_app():
    app = Flask(
        __name__,
        template_folder=os.path.join(ROOT_DIR, "templates"),
        static_folder=os.path.join(ROOT_DIR, "static"),
        static_url_path="/static",
    )
    app.json.ensure_ascii = False

    CORS(app, resources={r"/api/*": {"origins": get_cors_origins()}})

    app.register_blueprint(courses_bp)
    app.register_blueprint(pages_bp)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify(HealthResponse(status="healthy").model_dump())

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        if _wants_json():
            return jsonify(error.to_dict()), error.status_code
        return _error_page(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if _wants_json():
            return jsonify({"error": error.name, "details": {"description": error.description}}), error.code
        return _error_page(error.name, error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error: Exception):
        api_logger.log_error(error, {"path": request.path})
        error_dict, status_code = handle_exception(error)
        if _wants_json():
            return jsonify(error_dict), status_code
        return _error_page("Something went wrong", status_code)

    return app
