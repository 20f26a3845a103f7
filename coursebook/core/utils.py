import json
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from coursebook.core.config import MAX_AUTHOR_TONE_LENGTH, SLUG_MAX_LENGTH
from coursebook.core.errors import ValidationError

LESSON_LIST_FIELDS = ["objectives", "guiding_questions", "expansion_tips", "examples_to_add"]

_UNSAFE_HTML_PATTERNS = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE),
    re.compile(r"""\s*on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE),
    re.compile(r"\s*on\w+\s*=\s*[^\s>]*", re.IGNORECASE),
    re.compile(r"""\s*(?:href|src)\s*=\s*["'](?:javascript|data):[^"']*["']""", re.IGNORECASE),
    re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE),
    re.compile(r"<object\b[^<]*(?:(?!</object>)<[^<]*)*</object>", re.IGNORECASE),
    re.compile(r"<embed\b[^<]*>", re.IGNORECASE),
]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(title: str) -> str:
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug[:SLUG_MAX_LENGTH]


def generate_slug(title: str) -> str:
    base = slugify(title).strip("-") or "course"
    return f"{base}-{uuid.uuid4().hex[:8]}"


def sanitize_html(html: Optional[str]) -> str:
    if not html:
        return ""
    sanitized = html
    for pattern in _UNSAFE_HTML_PATTERNS:
        sanitized = pattern.sub("", sanitized)
    return sanitized.strip()


def validate_author_tone(tone: Optional[str]) -> Optional[str]:
    """Return the sanitized tone, or None when empty.

    Raises ValidationError when the tone is longer than MAX_AUTHOR_TONE_LENGTH.
    """
    if not tone:
        return None
    if len(tone) > MAX_AUTHOR_TONE_LENGTH:
        raise ValidationError(
            f"Author tone is too long (maximum {MAX_AUTHOR_TONE_LENGTH} characters)",
            details={"length": len(tone)},
        )
    return sanitize_html(tone)


def to_json(val):
    return json.dumps(val) if val is not None else None


def parse_json_fields(lesson):
    if not lesson:
        return lesson
    result = dict(lesson) if not isinstance(lesson, dict) else lesson.copy()
    for field in LESSON_LIST_FIELDS:
        val = result.get(field)
        if isinstance(val, str):
            try:
                result[field] = json.loads(val) if val else []
            except json.JSONDecodeError:
                result[field] = []
        elif val is None:
            result[field] = []
    return result
