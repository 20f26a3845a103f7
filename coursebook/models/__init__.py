from coursebook.models.database import DatabaseManager
from coursebook.models.schemas import (
    Course,
    CourseListResult,
    CourseResult,
    CourseWithLessons,
    Lesson,
    MutationResult,
)

__all__ = [
    "Course",
    "CourseListResult",
    "CourseResult",
    "CourseWithLessons",
    "DatabaseManager",
    "Lesson",
    "MutationResult",
]
