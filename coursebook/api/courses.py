import io
import time

from flask import Blueprint, g, jsonify, request, send_file
from pydantic import ValidationError

from coursebook.core.auth import optional_auth, require_auth
from coursebook.core.errors import BadRequestError, ErrorCode, handle_exception
from coursebook.core.logging import api_logger
from coursebook.models.schemas import (
    CourseCreate,
    CourseFilter,
    CourseUpdate,
    ExportOptions,
    FetchResult,
    LessonOrder,
    LessonUpdate,
)
from coursebook.services import course_service, export

courses_bp = Blueprint("courses", __name__)

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND.value: 404,
    ErrorCode.AUTHENTICATION_ERROR.value: 401,
    ErrorCode.VALIDATION_ERROR.value: 400,
    ErrorCode.BAD_REQUEST.value: 400,
    ErrorCode.ALREADY_EXISTS.value: 409,
}


def _respond(result: FetchResult, method: str, started: float, success_status: int = 200):
    status_code = (
        success_status if result.success else STATUS_BY_CODE.get(result.code, 500)
    )
    api_logger.log_request(
        method=method,
        path=request.path,
        status_code=status_code,
        duration_ms=(time.perf_counter() - started) * 1000,
        user_id=g.auth.user_id if g.get("auth") else None,
    )
    return jsonify(result.model_dump()), status_code


def _bad_request(message: str):
    error_dict, status_code = handle_exception(BadRequestError(message))
    return jsonify(error_dict), status_code


def _parse(model, data):
    try:
        return model(**(data or {})), None
    except ValidationError as e:
        return None, _bad_request(str(e))


@courses_bp.route("/api/courses", methods=["GET"])
@optional_auth
def list_courses():
    started = time.perf_counter()
    filters, error = _parse(
        CourseFilter,
        {
            key: request.args[key]
            for key in ("search", "author", "status", "validation")
            if key in request.args
        },
    )
    if error:
        return error

    result = course_service.get_my_courses(g.auth, filters)
    return _respond(result, "GET", started)


@courses_bp.route("/api/courses/<slug>", methods=["GET"])
@optional_auth
def get_course_by_slug(slug):
    started = time.perf_counter()
    result = course_service.get_course_by_slug(slug, viewer=g.auth)
    return _respond(result, "GET", started)


@courses_bp.route("/api/courses", methods=["POST"])
@require_auth
def create_course():
    started = time.perf_counter()
    payload, error = _parse(CourseCreate, request.get_json(silent=True))
    if error:
        return error

    result = course_service.create_course_from_payload(payload, g.auth)
    return _respond(result, "POST", started, success_status=201)


@courses_bp.route("/api/courses/<course_id>", methods=["PATCH"])
@require_auth
def update_course(course_id):
    started = time.perf_counter()
    patch, error = _parse(CourseUpdate, request.get_json(silent=True))
    if error:
        return error

    result = course_service.update_course(course_id, patch, g.auth)
    return _respond(result, "PATCH", started)


@courses_bp.route("/api/courses/<course_id>", methods=["DELETE"])
@require_auth
def delete_course(course_id):
    started = time.perf_counter()
    result = course_service.delete_course(course_id, g.auth)
    return _respond(result, "DELETE", started)


@courses_bp.route("/api/courses/<slug>/publish", methods=["POST"])
@require_auth
def publish_course(slug):
    started = time.perf_counter()
    result = course_service.set_course_published(slug, True, g.auth)
    return _respond(result, "POST", started)


@courses_bp.route("/api/courses/<slug>/unpublish", methods=["POST"])
@require_auth
def unpublish_course(slug):
    started = time.perf_counter()
    result = course_service.set_course_published(slug, False, g.auth)
    return _respond(result, "POST", started)


@courses_bp.route("/api/courses/<course_id>/lessons/order", methods=["PUT"])
@require_auth
def reorder_lessons(course_id):
    started = time.perf_counter()
    order, error = _parse(LessonOrder, request.get_json(silent=True))
    if error:
        return error

    result = course_service.reorder_lessons(course_id, order.lesson_ids, g.auth)
    return _respond(result, "PUT", started)


@courses_bp.route("/api/lessons/<lesson_id>", methods=["PATCH"])
@require_auth
def update_lesson(lesson_id):
    started = time.perf_counter()
    patch, error = _parse(LessonUpdate, request.get_json(silent=True))
    if error:
        return error

    result = course_service.update_lesson(lesson_id, patch, g.auth)
    return _respond(result, "PATCH", started)


@courses_bp.route("/api/courses/<course_id>/export", methods=["GET"])
@require_auth
def export_course(course_id):
    started = time.perf_counter()
    options, error = _parse(
        ExportOptions,
        {key: request.args[key] for key in ("format", "mode") if key in request.args},
    )
    if error:
        return error

    result = course_service.get_course(course_id, g.auth)
    if not result.success or result.course is None:
        return _respond(result, "GET", started)
    if not result.course.lessons:
        return _bad_request("Course has no lessons to export")

    filename, body, mimetype = export.build_export(
        result.course, options.format, options.mode
    )
    api_logger.log_request(
        method="GET",
        path=request.path,
        status_code=200,
        duration_ms=(time.perf_counter() - started) * 1000,
        user_id=g.auth.user_id,
        format=options.format,
        mode=options.mode,
    )
    return send_file(
        io.BytesIO(body),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )
