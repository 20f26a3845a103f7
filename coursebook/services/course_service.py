"""Course collaborators used by the page controllers and the JSON API.

Every function returns a result object and never raises. Failures are
logged and reported with ``success=False`` and an error code. Unexpected
errors keep their detail in the log and give the caller a generic message.
"""
import uuid
from typing import List, Optional

from coursebook.core.auth import AuthContext
from coursebook.core.config import SLUG_RETRY_ATTEMPTS
from coursebook.core.errors import (
    AlreadyExistsError,
    AppError,
    AuthenticationError,
    BadRequestError,
    ErrorCode,
    NotFoundError,
)
from coursebook.core.logging import get_logger
from coursebook.core.utils import (
    LESSON_LIST_FIELDS,
    generate_slug,
    parse_json_fields,
    to_json,
    utc_now,
    validate_author_tone,
)
from coursebook.models.database import (
    get_db_connection,
    get_placeholder,
    row_to_dict,
    use_postgres,
)
from coursebook.models.schemas import (
    Course,
    CourseCreate,
    CourseFilter,
    CourseListResult,
    CourseResult,
    CourseUpdate,
    CourseWithLessons,
    Lesson,
    LessonResult,
    LessonUpdate,
    MutationResult,
)

logger = get_logger("courses")


def _failure(result_cls, error: Exception, **context):
    if isinstance(error, AppError):
        logger.warning(error.message, extra={"course": context})
        return result_cls(success=False, error=error.message, code=error.code.value)

    logger.error(
        f"Unexpected course service error: {error}",
        extra={"course": context},
        exc_info=True,
    )
    return result_cls(
        success=False,
        error="Unexpected error while handling the course",
        code=ErrorCode.INTERNAL_ERROR.value,
    )


def _fetch_lessons(cursor, course_id: str) -> List[Lesson]:
    ph = get_placeholder()
    cursor.execute(
        f"SELECT * FROM lessons WHERE course_id = {ph} ORDER BY order_index",
        (course_id,),
    )
    return [Lesson(**parse_json_fields(row_to_dict(r))) for r in cursor.fetchall()]


def _with_lessons(cursor, row) -> CourseWithLessons:
    course = row_to_dict(row)
    return CourseWithLessons(**course, lessons=_fetch_lessons(cursor, course["id"]))


def _fetch_owned_course(cursor, auth: AuthContext, column: str, value: str):
    ph = get_placeholder()
    cursor.execute(
        f"SELECT * FROM courses WHERE {column} = {ph} AND user_id = {ph}",
        (value, auth.user_id),
    )
    row = cursor.fetchone()
    if row is None:
        raise NotFoundError("Course", value)
    return row


def _unique_slug(cursor, title: str) -> str:
    ph = get_placeholder()
    for _ in range(SLUG_RETRY_ATTEMPTS):
        slug = generate_slug(title)
        cursor.execute(f"SELECT id FROM courses WHERE slug = {ph}", (slug,))
        if cursor.fetchone() is None:
            return slug
    raise AlreadyExistsError("Course slug", title)


def _admin_listing_query(filters: CourseFilter):
    ph = get_placeholder()
    like = "ILIKE" if use_postgres() else "LIKE"
    clauses = []
    params = []

    if filters.search:
        clauses.append(f"(title {like} {ph} OR description {like} {ph})")
        params.extend([f"%{filters.search}%", f"%{filters.search}%"])

    if filters.author:
        clauses.append(f"user_id = {ph}")
        params.append(filters.author)

    if filters.status != "all":
        clauses.append(f"published = {ph}")
        params.append(filters.status == "published")

    if filters.validation == "not-validated":
        clauses.append("last_validated_at IS NULL")
    elif filters.validation == "validated":
        clauses.append("last_validated_at IS NOT NULL")
    elif filters.validation != "all":
        clauses.append(f"last_validation_severity = {ph}")
        params.append(filters.validation)

    where = " AND ".join(clauses) or "1=1"
    return f"SELECT * FROM courses WHERE {where} ORDER BY updated_at DESC", params


def get_course_by_slug(slug: str, viewer: Optional[AuthContext] = None) -> CourseResult:
    """Look up a published course by slug.

    A viewer may also open their own unpublished course through its slug.
    """
    ph = get_placeholder()
    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            f"SELECT * FROM courses WHERE slug = {ph} AND published = {ph}",
            (slug, True),
        )
        row = cursor.fetchone()

        if row is None and viewer is not None:
            cursor.execute(
                f"SELECT * FROM courses WHERE slug = {ph} AND user_id = {ph}",
                (slug, viewer.user_id),
            )
            row = cursor.fetchone()

        if row is None:
            raise NotFoundError("Course", slug)

        return CourseResult(success=True, course=_with_lessons(cursor, row))
    except Exception as e:
        return _failure(CourseResult, e, slug=slug)
    finally:
        if conn:
            conn.close()


def get_my_courses(
    auth: Optional[AuthContext], filters: Optional[CourseFilter] = None
) -> CourseListResult:
    """Courses visible to the caller.

    Administrators get the whole catalog, narrowed by ``filters``. Everyone
    else gets their own courses plus the published ones; filters do not
    apply to them.
    """
    if auth is None:
        return _failure(CourseListResult, AuthenticationError("Authentication required"))

    filters = filters or CourseFilter()
    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()

        if auth.is_admin:
            query, params = _admin_listing_query(filters)
        else:
            ph = get_placeholder()
            query = (
                f"SELECT * FROM courses WHERE user_id = {ph} OR published = {ph} "
                "ORDER BY updated_at DESC"
            )
            params = [auth.user_id, True]

        cursor.execute(query, params)
        courses = [Course(**row_to_dict(r)) for r in cursor.fetchall()]
        logger.info(
            f"Listed {len(courses)} courses",
            extra={"user_id": auth.user_id, "course": {"admin": auth.is_admin}},
        )
        return CourseListResult(success=True, courses=courses, is_admin=auth.is_admin)
    except Exception as e:
        return _failure(CourseListResult, e, user_id=auth.user_id)
    finally:
        if conn:
            conn.close()


def get_course(course_id: str, auth: Optional[AuthContext]) -> CourseResult:
    if auth is None:
        return _failure(CourseResult, AuthenticationError("Authentication required"))

    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        row = _fetch_owned_course(cursor, auth, "id", course_id)
        return CourseResult(success=True, course=_with_lessons(cursor, row))
    except Exception as e:
        return _failure(CourseResult, e, course_id=course_id)
    finally:
        if conn:
            conn.close()


def create_course_from_payload(
    payload: CourseCreate, auth: Optional[AuthContext]
) -> CourseResult:
    """Store a generated course and its lessons as an unpublished draft.

    The course row and its lessons are written in one transaction.
    """
    if auth is None:
        return _failure(CourseResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        author_tone = validate_author_tone(payload.author_tone)

        conn = get_db_connection()
        cursor = conn.cursor()
        slug = _unique_slug(cursor, payload.title)
        course_id = str(uuid.uuid4())
        now = utc_now()

        cursor.execute(
            f"""INSERT INTO courses (
                id, user_id, title, description, slug, published, author_tone,
                created_at, updated_at
            )
            VALUES ({ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph})""",
            (
                course_id,
                auth.user_id,
                payload.title,
                payload.description,
                slug,
                False,
                author_tone,
                now,
                now,
            ),
        )

        for index, lesson in enumerate(payload.lessons):
            cursor.execute(
                f"""INSERT INTO lessons (
                    id, course_id, order_index, title, logline, content,
                    objectives, guiding_questions, expansion_tips, examples_to_add,
                    created_at, updated_at
                )
                VALUES ({ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph})""",
                (
                    str(uuid.uuid4()),
                    course_id,
                    index,
                    lesson.title,
                    lesson.logline,
                    lesson.content,
                    *(to_json(getattr(lesson, field)) for field in LESSON_LIST_FIELDS),
                    now,
                    now,
                ),
            )
        conn.commit()

        cursor.execute(f"SELECT * FROM courses WHERE id = {ph}", (course_id,))
        course = _with_lessons(cursor, cursor.fetchone())
        logger.info(
            "Course created",
            extra={
                "user_id": auth.user_id,
                "course": {"id": course_id, "slug": slug, "lessons": len(course.lessons)},
            },
        )
        return CourseResult(success=True, course=course)
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(CourseResult, e, title=payload.title)
    finally:
        if conn:
            conn.close()


def update_course(
    course_id: str, patch: CourseUpdate, auth: Optional[AuthContext]
) -> CourseResult:
    if auth is None:
        return _failure(CourseResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("No fields to update")
        if "author_tone" in changes:
            changes["author_tone"] = validate_author_tone(changes["author_tone"])

        conn = get_db_connection()
        cursor = conn.cursor()
        _fetch_owned_course(cursor, auth, "id", course_id)

        assignments = ", ".join(f"{column} = {ph}" for column in changes)
        cursor.execute(
            f"UPDATE courses SET {assignments}, updated_at = {ph} "
            f"WHERE id = {ph} AND user_id = {ph}",
            (*changes.values(), utc_now(), course_id, auth.user_id),
        )
        conn.commit()

        row = _fetch_owned_course(cursor, auth, "id", course_id)
        return CourseResult(success=True, course=_with_lessons(cursor, row))
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(CourseResult, e, course_id=course_id)
    finally:
        if conn:
            conn.close()


def update_lesson(
    lesson_id: str, patch: LessonUpdate, auth: Optional[AuthContext]
) -> LessonResult:
    """Edit one lesson. Only the owner of the lesson's course may change it."""
    if auth is None:
        return _failure(LessonResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("No fields to update")
        for field in LESSON_LIST_FIELDS:
            if field in changes:
                changes[field] = to_json(changes[field])

        conn = get_db_connection()
        cursor = conn.cursor()
        cursor.execute(
            f"""SELECT l.course_id FROM lessons l
            JOIN courses c ON c.id = l.course_id
            WHERE l.id = {ph} AND c.user_id = {ph}""",
            (lesson_id, auth.user_id),
        )
        owned = cursor.fetchone()
        if owned is None:
            raise NotFoundError("Lesson", lesson_id)
        course_id = row_to_dict(owned)["course_id"]

        now = utc_now()
        assignments = ", ".join(f"{column} = {ph}" for column in changes)
        cursor.execute(
            f"UPDATE lessons SET {assignments}, updated_at = {ph} WHERE id = {ph}",
            (*changes.values(), now, lesson_id),
        )
        cursor.execute(
            f"UPDATE courses SET updated_at = {ph} WHERE id = {ph}",
            (now, course_id),
        )
        conn.commit()

        cursor.execute(f"SELECT * FROM lessons WHERE id = {ph}", (lesson_id,))
        lesson = Lesson(**parse_json_fields(row_to_dict(cursor.fetchone())))
        logger.info(
            "Lesson updated",
            extra={
                "user_id": auth.user_id,
                "course": {"id": course_id, "lesson_id": lesson_id, "fields": list(changes)},
            },
        )
        return LessonResult(success=True, lesson=lesson)
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(LessonResult, e, lesson_id=lesson_id)
    finally:
        if conn:
            conn.close()


def set_course_published(
    slug: str, published: bool, auth: Optional[AuthContext]
) -> CourseResult:
    if auth is None:
        return _failure(CourseResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        _fetch_owned_course(cursor, auth, "slug", slug)

        cursor.execute(
            f"UPDATE courses SET published = {ph}, updated_at = {ph} "
            f"WHERE slug = {ph} AND user_id = {ph}",
            (published, utc_now(), slug, auth.user_id),
        )
        conn.commit()

        row = _fetch_owned_course(cursor, auth, "slug", slug)
        logger.info(
            "Course published" if published else "Course unpublished",
            extra={"user_id": auth.user_id, "course": {"slug": slug}},
        )
        return CourseResult(success=True, course=_with_lessons(cursor, row))
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(CourseResult, e, slug=slug)
    finally:
        if conn:
            conn.close()


def delete_course(course_id: str, auth: Optional[AuthContext]) -> MutationResult:
    if auth is None:
        return _failure(MutationResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        _fetch_owned_course(cursor, auth, "id", course_id)
        cursor.execute(
            f"DELETE FROM courses WHERE id = {ph} AND user_id = {ph}",
            (course_id, auth.user_id),
        )
        conn.commit()
        logger.info(
            "Course deleted",
            extra={"user_id": auth.user_id, "course": {"id": course_id}},
        )
        return MutationResult(success=True)
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(MutationResult, e, course_id=course_id)
    finally:
        if conn:
            conn.close()


def reorder_lessons(
    course_id: str, ordered_lesson_ids: List[str], auth: Optional[AuthContext]
) -> MutationResult:
    if auth is None:
        return _failure(MutationResult, AuthenticationError("Authentication required"))

    ph = get_placeholder()
    conn = None
    try:
        conn = get_db_connection()
        cursor = conn.cursor()
        _fetch_owned_course(cursor, auth, "id", course_id)

        now = utc_now()
        for index, lesson_id in enumerate(ordered_lesson_ids):
            cursor.execute(
                f"UPDATE lessons SET order_index = {ph}, updated_at = {ph} "
                f"WHERE id = {ph} AND course_id = {ph}",
                (index, now, lesson_id, course_id),
            )
            if cursor.rowcount == 0:
                raise BadRequestError(
                    "Failed to reorder some lessons",
                    details={"lesson_id": lesson_id},
                )
        conn.commit()
        return MutationResult(success=True)
    except Exception as e:
        if conn:
            conn.rollback()
        return _failure(MutationResult, e, course_id=course_id)
    finally:
        if conn:
            conn.close()
