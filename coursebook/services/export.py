"""Course export to Markdown or plain text.

``mode="single"`` produces one document for the whole course.
``mode="multi"`` produces a zip archive with one document per lesson.
"""
import io
import re
import zipfile
from typing import List, Optional, Tuple

from coursebook.core.utils import slugify
from coursebook.models.schemas import CourseWithLessons, Lesson

RULE_WIDTH = 80

MIMETYPES = {
    "md": "text/markdown",
    "txt": "text/plain",
    "zip": "application/zip",
}

VALIDATION_LABELS = {
    "info": "Passed",
    "warning": "Passed with warnings",
    "error": "Errors found",
}

_EXTRA_SECTIONS = [
    ("guiding_questions", "Guiding questions"),
    ("expansion_tips", "Expansion tips"),
    ("examples_to_add", "Examples to add"),
]


def _format_date(value: Optional[str]) -> str:
    return value[:10] if value else "unknown"


def _escape_yaml(text: Optional[str]) -> str:
    if not text:
        return ""
    if re.search(r"[:#@`]", text) or "\n" in text:
        return '"{}"'.format(text.replace('"', '\\"'))
    return text


def validation_status(course: CourseWithLessons) -> str:
    if not course.last_validated_at:
        return "Not validated"
    label = VALIDATION_LABELS.get(course.last_validation_severity, "Unknown")
    return f"{label} ({_format_date(course.last_validated_at)})"


def _frontmatter(course: CourseWithLessons) -> List[str]:
    return [
        "---",
        f"title: {_escape_yaml(course.title)}",
        f"description: {_escape_yaml(course.description)}",
        f"slug: {course.slug}",
        f"author_tone: {_escape_yaml(course.author_tone or 'Not set')}",
        f"lesson_count: {len(course.lessons)}",
        f"validation_status: {_escape_yaml(validation_status(course))}",
        f"created_at: {_format_date(course.created_at)}",
        f"updated_at: {_format_date(course.updated_at)}",
        f"published: {'yes' if course.published else 'no'}",
        "---",
        "",
    ]


def lesson_as_markdown(lesson: Lesson, index: int) -> str:
    lines = [f"## {index + 1}. {lesson.title}", ""]

    if lesson.logline:
        lines += [f"> {lesson.logline}", ""]

    if lesson.objectives:
        lines += ["### Learning objectives", ""]
        lines += [f"- {item}" for item in lesson.objectives]
        lines.append("")

    lines += ["### Content", "", lesson.content or "No content", ""]

    for field, heading in _EXTRA_SECTIONS:
        items = getattr(lesson, field)
        if items:
            lines += [f"### {heading}", ""]
            lines += [f"- {item}" for item in items]
            lines.append("")

    lines += ["---", ""]
    return "\n".join(lines)


def format_as_markdown(course: CourseWithLessons, include_frontmatter: bool = True) -> str:
    lines = _frontmatter(course) if include_frontmatter else []
    lines.append(f"# {course.title}")
    lines.append("")
    if course.description:
        lines += [course.description, ""]
    lines += [f"**Lessons:** {len(course.lessons)}", "", "---", ""]

    sections = ["\n".join(lines)]
    sections += [lesson_as_markdown(lesson, i) for i, lesson in enumerate(course.lessons)]
    return "\n".join(sections)


def lesson_as_text(lesson: Lesson, index: int) -> str:
    lines = [
        "-" * RULE_WIDTH,
        f"LESSON {index + 1}: {lesson.title}",
        "-" * RULE_WIDTH,
        "",
    ]

    if lesson.logline:
        lines += [f"Summary: {lesson.logline}", ""]

    if lesson.objectives:
        lines.append("LEARNING OBJECTIVES:")
        lines += [f"  {i}. {item}" for i, item in enumerate(lesson.objectives, 1)]
        lines.append("")

    lines += ["CONTENT:", "", lesson.content or "No content", ""]

    for field, heading in _EXTRA_SECTIONS:
        items = getattr(lesson, field)
        if items:
            lines.append(f"{heading.upper()}:")
            lines += [f"  {i}. {item}" for i, item in enumerate(items, 1)]
            lines.append("")

    lines.append("")
    return "\n".join(lines)


def format_as_text(course: CourseWithLessons, include_metadata: bool = True) -> str:
    sections = []
    if include_metadata:
        sections.append(
            "\n".join(
                [
                    "=" * RULE_WIDTH,
                    f"COURSE: {course.title}",
                    "=" * RULE_WIDTH,
                    "",
                    f"Description: {course.description or 'No description'}",
                    f"Author tone: {course.author_tone or 'Not set'}",
                    f"Lessons: {len(course.lessons)}",
                    f"Validation: {validation_status(course)}",
                    f"Created: {_format_date(course.created_at)}",
                    f"Updated: {_format_date(course.updated_at)}",
                    f"Published: {'Yes' if course.published else 'No'}",
                    "",
                    "=" * RULE_WIDTH,
                    "",
                ]
            )
        )

    sections += [lesson_as_text(lesson, i) for i, lesson in enumerate(course.lessons)]
    sections += ["=" * RULE_WIDTH, f"END OF COURSE: {course.title}", "=" * RULE_WIDTH]
    return "\n".join(sections)


def generate_filename(course: CourseWithLessons, fmt: str) -> str:
    return f"{slugify(course.title).strip('-') or 'course'}.{fmt}"


def generate_lesson_filename(lesson: Lesson, index: int, fmt: str) -> str:
    return f"{index + 1:02d}-{slugify(lesson.title).strip('-') or 'lesson'}.{fmt}"


def build_export(course: CourseWithLessons, fmt: str, mode: str) -> Tuple[str, bytes, str]:
    """Return ``(filename, body, mimetype)`` for a course export."""
    if mode == "single":
        body = format_as_markdown(course) if fmt == "md" else format_as_text(course)
        return generate_filename(course, fmt), body.encode("utf-8"), MIMETYPES[fmt]

    render = lesson_as_markdown if fmt == "md" else lesson_as_text
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for index, lesson in enumerate(course.lessons):
            archive.writestr(
                generate_lesson_filename(lesson, index, fmt),
                render(lesson, index),
            )
    return generate_filename(course, "zip"), buffer.getvalue(), MIMETYPES["zip"]
