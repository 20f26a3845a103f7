"""Course data collaborators for the pages and the JSON API."""
from coursebook.services.course_service import (
    create_course_from_payload,
    delete_course,
    get_course,
    get_course_by_slug,
    get_my_courses,
    reorder_lessons,
    set_course_published,
    update_course,
    update_lesson,
)

__all__ = [
    "create_course_from_payload",
    "delete_course",
    "get_course",
    "get_course_by_slug",
    "get_my_courses",
    "reorder_lessons",
    "set_course_published",
    "update_course",
    "update_lesson",
]
