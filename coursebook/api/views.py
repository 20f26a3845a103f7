"""Display collaborators: each renders one piece of a page from its inputs."""
from typing import List

from flask import render_template

from coursebook.core.config import LOCAL_DRAFT_STORAGE_KEY
from coursebook.models.schemas import Course, CourseWithLessons


def course_viewer(course: CourseWithLessons) -> str:
    return render_template("course_viewer.html", course=course)


def courses_list(courses: List[Course], is_admin: bool) -> str:
    drafts = [c for c in courses if not c.published]
    published = [c for c in courses if c.published]
    return render_template(
        "courses_list.html",
        drafts=drafts,
        published=published,
        is_admin=is_admin,
    )


def local_drafts_section() -> str:
    # Drafts live only in the browser; the server renders an empty mount point.
    return render_template("local_drafts.html", storage_key=LOCAL_DRAFT_STORAGE_KEY)
