"""Course collaborator tests against the sqlite test database."""
import logging
import sqlite3
import threading

import pytest

from coursebook.core.auth import AuthContext
from coursebook.models.schemas import (
    CourseCreate,
    CourseFilter,
    CourseListResult,
    CourseResult,
    CourseUpdate,
    LessonUpdate,
)
from coursebook.services import course_service


def _payload(title="Intro to Go", lessons=("Basics", "Concurrency"), **extra):
    return CourseCreate(
        title=title,
        description="Learn Go",
        lessons=[
            {"title": t, "content": f"{t} content", "objectives": [f"Know {t}"]}
            for t in lessons
        ],
        **extra,
    )


def test_result_payload_is_absent_on_failure():
    result = CourseResult(success=False, course={"slug": "x", "title": "X"})
    assert result.found_course is None

    listing = CourseListResult(success=False, courses=[], is_admin=True)
    assert listing.visible_courses == []
    assert listing.admin_view is False

    missing = CourseListResult(success=True)
    assert missing.visible_courses == []
    assert missing.admin_view is False


def test_get_course_by_slug_returns_published_course_with_ordered_lessons(make_course):
    make_course(
        user_id="author",
        slug="intro-to-go",
        published=True,
        lessons=["One", "Two", "Three"],
    )

    result = course_service.get_course_by_slug("intro-to-go")

    assert result.success
    assert result.course.slug == "intro-to-go"
    assert [lesson.title for lesson in result.course.lessons] == ["One", "Two", "Three"]
    assert result.course.lessons[0].objectives == ["Understand One"]
    assert result.course.lessons[0].guiding_questions == []


def test_get_course_by_slug_hides_drafts_from_strangers(make_course, owner):
    make_course(user_id="author", slug="secret-draft")

    anonymous = course_service.get_course_by_slug("secret-draft")
    stranger = course_service.get_course_by_slug("secret-draft", viewer=owner)

    assert anonymous.success is False
    assert anonymous.code == "NOT_FOUND"
    assert stranger.success is False


def test_get_course_by_slug_lets_owner_open_own_draft(make_course, owner):
    make_course(user_id=owner.user_id, slug="my-draft")

    result = course_service.get_course_by_slug("my-draft", viewer=owner)

    assert result.success
    assert result.course.published is False


def test_get_my_courses_requires_caller():
    result = course_service.get_my_courses(None)

    assert result.success is False
    assert result.code == "AUTHENTICATION_ERROR"
    assert result.visible_courses == []


def test_get_my_courses_merges_own_and_published(make_course, owner):
    make_course(user_id=owner.user_id, title="Old own", updated_at="2025-01-01T00:00:00+00:00")
    make_course(
        user_id=owner.user_id,
        title="Own published",
        published=True,
        updated_at="2025-03-01T00:00:00+00:00",
    )
    make_course(
        user_id="other",
        title="Other published",
        published=True,
        updated_at="2025-02-01T00:00:00+00:00",
    )
    make_course(user_id="other", title="Other draft")

    result = course_service.get_my_courses(owner)

    assert result.success
    assert result.is_admin is False
    assert [c.title for c in result.courses] == ["Own published", "Other published", "Old own"]


def test_get_my_courses_ignores_filters_for_regular_users(make_course, owner):
    make_course(user_id=owner.user_id, title="Baking")
    make_course(user_id=owner.user_id, title="Pottery")

    result = course_service.get_my_courses(owner, CourseFilter(search="Baking"))

    assert len(result.courses) == 2


def test_get_my_courses_gives_admin_the_whole_catalog(make_course, admin):
    make_course(user_id="a", title="A draft")
    make_course(user_id="b", title="B published", published=True)

    result = course_service.get_my_courses(admin)

    assert result.success
    assert result.is_admin is True
    assert {c.title for c in result.courses} == {"A draft", "B published"}


def test_admin_filters(make_course, admin):
    make_course(user_id="a", title="Sourdough basics", description="bread")
    make_course(
        user_id="b",
        title="Pottery",
        published=True,
        last_validated_at="2025-01-02T00:00:00+00:00",
        last_validation_severity="warning",
    )
    make_course(
        user_id="b",
        title="Weaving",
        published=True,
        last_validated_at="2025-01-02T00:00:00+00:00",
        last_validation_severity="error",
    )

    def titles(**kwargs):
        result = course_service.get_my_courses(admin, CourseFilter(**kwargs))
        return sorted(c.title for c in result.courses)

    assert titles(search="sourdough") == ["Sourdough basics"]
    assert titles(search="BREAD") == ["Sourdough basics"]
    assert titles(author="b") == ["Pottery", "Weaving"]
    assert titles(status="draft") == ["Sourdough basics"]
    assert titles(status="published") == ["Pottery", "Weaving"]
    assert titles(validation="not-validated") == ["Sourdough basics"]
    assert titles(validation="validated") == ["Pottery", "Weaving"]
    assert titles(validation="error") == ["Weaving"]


def test_create_course_from_payload_stores_unpublished_draft(owner):
    result = course_service.create_course_from_payload(_payload(), owner)

    assert result.success
    course = result.course
    assert course.published is False
    assert course.user_id == owner.user_id
    assert course.slug.startswith("intro-to-go-")
    assert [lesson.title for lesson in course.lessons] == ["Basics", "Concurrency"]
    assert course.lessons[1].objectives == ["Know Concurrency"]

    fetched = course_service.get_course(course.id, owner)
    assert fetched.success
    assert fetched.course.slug == course.slug


def test_create_course_generates_distinct_slugs(owner):
    first = course_service.create_course_from_payload(_payload(), owner)
    second = course_service.create_course_from_payload(_payload(), owner)

    assert first.course.slug != second.course.slug


def test_create_course_sanitizes_author_tone(owner):
    result = course_service.create_course_from_payload(
        _payload(author_tone="Warm <script>alert(1)</script>and direct"), owner
    )

    assert result.success
    assert result.course.author_tone == "Warm and direct"


def test_create_course_rejects_long_author_tone(owner):
    result = course_service.create_course_from_payload(
        _payload(author_tone="x" * 2001), owner
    )

    assert result.success is False
    assert result.code == "VALIDATION_ERROR"
    assert course_service.get_my_courses(owner).courses == []


def test_update_course_is_owner_only(owner):
    created = course_service.create_course_from_payload(_payload(), owner)
    stranger = AuthContext(user_id="stranger")

    denied = course_service.update_course(created.course.id, CourseUpdate(title="Hacked"), stranger)
    updated = course_service.update_course(
        created.course.id, CourseUpdate(title="Go, properly"), owner
    )

    assert denied.success is False
    assert denied.code == "NOT_FOUND"
    assert updated.success
    assert updated.course.title == "Go, properly"
    assert updated.course.description == "Learn Go"


def test_update_course_without_fields_is_rejected(owner):
    created = course_service.create_course_from_payload(_payload(), owner)

    result = course_service.update_course(created.course.id, CourseUpdate(), owner)

    assert result.success is False
    assert result.code == "BAD_REQUEST"


def test_publish_then_unpublish(owner):
    created = course_service.create_course_from_payload(_payload(), owner)
    slug = created.course.slug

    published = course_service.set_course_published(slug, True, owner)
    assert published.course.published is True
    assert course_service.get_course_by_slug(slug).success

    course_service.set_course_published(slug, False, owner)
    assert course_service.get_course_by_slug(slug).success is False


def test_delete_course_removes_lessons(owner):
    created = course_service.create_course_from_payload(_payload(), owner)

    result = course_service.delete_course(created.course.id, owner)

    assert result.success
    assert course_service.get_course(created.course.id, owner).success is False
    again = course_service.delete_course(created.course.id, owner)
    assert again.code == "NOT_FOUND"


def test_reorder_lessons(owner):
    created = course_service.create_course_from_payload(
        _payload(lessons=("A", "B", "C")), owner
    )
    ids = [lesson.id for lesson in created.course.lessons]

    result = course_service.reorder_lessons(created.course.id, list(reversed(ids)), owner)

    assert result.success
    reordered = course_service.get_course(created.course.id, owner).course
    assert [lesson.title for lesson in reordered.lessons] == ["C", "B", "A"]


def test_reorder_lessons_rejects_foreign_lesson(owner):
    created = course_service.create_course_from_payload(_payload(lessons=("A", "B")), owner)
    ids = [lesson.id for lesson in created.course.lessons]

    result = course_service.reorder_lessons(created.course.id, [ids[1], "unknown"], owner)

    assert result.success is False
    unchanged = course_service.get_course(created.course.id, owner).course
    assert [lesson.title for lesson in unchanged.lessons] == ["A", "B"]


def test_mutations_require_caller():
    assert course_service.create_course_from_payload(_payload(), None).code == "AUTHENTICATION_ERROR"
    assert course_service.delete_course("x", None).success is False
    assert course_service.reorder_lessons("x", ["y"], None).success is False
    assert course_service.update_lesson("x", LessonUpdate(title="T"), None).success is False


def test_slug_lookups_leave_log_records_untouched(make_course):
    make_course(user_id="author", slug="shared", published=True)
    factory = logging.getLogRecordFactory()

    threads = [
        threading.Thread(target=course_service.get_course_by_slug, args=(slug,))
        for slug in ("shared", "missing-a", "missing-b")
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert logging.getLogRecordFactory() is factory
    record = logging.getLogger("coursebook.courses").makeRecord(
        "coursebook.courses", logging.INFO, __file__, 1, "after", None, None
    )
    assert not hasattr(record, "extra_fields")


def test_unexpected_errors_hide_their_detail(monkeypatch, owner):
    def broken_connection():
        raise sqlite3.OperationalError("no such table: courses")

    monkeypatch.setattr(course_service, "get_db_connection", broken_connection)

    result = course_service.get_my_courses(owner)

    assert result.success is False
    assert result.code == "INTERNAL_ERROR"
    assert "courses" not in result.error
    assert "no such table" not in result.error


def test_course_update_rejects_explicit_nulls():
    with pytest.raises(ValueError):
        CourseUpdate(title=None)
    with pytest.raises(ValueError):
        CourseUpdate(published=None)

    assert CourseUpdate(description=None).model_dump(exclude_unset=True) == {
        "description": None
    }


def test_update_lesson_changes_content_and_lists(owner):
    created = course_service.create_course_from_payload(_payload(), owner)
    lesson = created.course.lessons[0]

    result = course_service.update_lesson(
        lesson.id,
        LessonUpdate(content="Goroutines first", guiding_questions=["Why channels?"]),
        owner,
    )

    assert result.success
    assert result.lesson.content == "Goroutines first"
    assert result.lesson.guiding_questions == ["Why channels?"]
    assert result.lesson.title == "Basics"
    assert result.lesson.objectives == ["Know Basics"]

    reloaded = course_service.get_course(created.course.id, owner).course
    assert reloaded.lessons[0].content == "Goroutines first"


def test_update_lesson_is_owner_only(owner):
    created = course_service.create_course_from_payload(_payload(), owner)
    lesson = created.course.lessons[0]
    stranger = AuthContext(user_id="stranger")

    denied = course_service.update_lesson(lesson.id, LessonUpdate(title="Hacked"), stranger)

    assert denied.success is False
    assert denied.code == "NOT_FOUND"
    unchanged = course_service.get_course(created.course.id, owner).course
    assert unchanged.lessons[0].title == "Basics"


def test_update_lesson_without_fields_is_rejected(owner):
    created = course_service.create_course_from_payload(_payload(), owner)

    result = course_service.update_lesson(created.course.lessons[0].id, LessonUpdate(), owner)

    assert result.code == "BAD_REQUEST"
