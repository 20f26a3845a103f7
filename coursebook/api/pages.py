"""HTML pages: the public course page and the course dashboard."""
import time

from flask import Blueprint, g, make_response, redirect, render_template, url_for
from markupsafe import Markup

from coursebook.api import views
from coursebook.core.auth import optional_auth
from coursebook.core.config import DASHBOARD_COPY
from coursebook.core.errors import NotFoundError
from coursebook.core.logging import api_logger
from coursebook.services import course_service

pages_bp = Blueprint("pages", __name__)

NO_CACHE = "no-cache, no-store, must-revalidate"


@pages_bp.route("/")
def index():
    return redirect(url_for("pages.courses_page"))


@pages_bp.route("/courses/<slug>")
@optional_auth
def course_page(slug):
    started = time.perf_counter()
    result = course_service.get_course_by_slug(slug, viewer=g.auth)

    course = result.found_course
    if course is None:
        raise NotFoundError("Course", slug)

    html = render_template(
        "course_page.html",
        title=course.title,
        viewer=Markup(views.course_viewer(course)),
    )
    api_logger.log_request(
        method="GET",
        path=f"/courses/{slug}",
        status_code=200,
        duration_ms=(time.perf_counter() - started) * 1000,
        user_id=g.auth.user_id if g.auth else None,
    )
    return html


@pages_bp.route("/courses")
@optional_auth
def courses_page():
    started = time.perf_counter()
    result = course_service.get_my_courses(g.auth)

    courses = result.visible_courses
    is_admin = result.admin_view
    copy = DASHBOARD_COPY[is_admin]

    drafts = None if is_admin else Markup(views.local_drafts_section())

    response = make_response(
        render_template(
            "courses.html",
            copy=copy,
            courses_list=Markup(views.courses_list(courses, is_admin)),
            local_drafts=drafts,
        )
    )
    response.headers["Cache-Control"] = NO_CACHE
    api_logger.log_request(
        method="GET",
        path="/courses",
        status_code=200,
        duration_ms=(time.perf_counter() - started) * 1000,
        user_id=g.auth.user_id if g.auth else None,
        courses=len(courses),
        admin=is_admin,
        degraded=not result.success,
    )
    return response
