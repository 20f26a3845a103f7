from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimestampedModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def serialize_timestamp(cls, v):
        if isinstance(v, datetime):
            return v.isoformat()
        return v


class Course(TimestampedModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    slug: str
    published: bool = False
    author_tone: Optional[str] = None
    last_validated_at: Optional[str] = None
    last_validation_severity: Optional[str] = None

    @field_validator("last_validated_at", mode="before")
    @classmethod
    def serialize_validated_at(cls, v):
        if isinstance(v, datetime):
            return v.isoformat()
        return v


class Lesson(TimestampedModel):
    id: Optional[str] = None
    course_id: Optional[str] = None
    order_index: int = 0
    title: str
    logline: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    guiding_questions: List[str] = Field(default_factory=list)
    expansion_tips: List[str] = Field(default_factory=list)
    examples_to_add: List[str] = Field(default_factory=list)
    content: Optional[str] = None


class CourseWithLessons(Course):
    lessons: List[Lesson] = Field(default_factory=list)


class FetchResult(BaseModel):
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None


class CourseResult(FetchResult):
    course: Optional[CourseWithLessons] = None

    @property
    def found_course(self) -> Optional[CourseWithLessons]:
        return self.course if self.success else None


class CourseListResult(FetchResult):
    courses: Optional[List[Course]] = None
    is_admin: Optional[bool] = None

    @property
    def visible_courses(self) -> List[Course]:
        if not self.success:
            return []
        return self.courses or []

    @property
    def admin_view(self) -> bool:
        return bool(self.is_admin) if self.success else False


class LessonResult(FetchResult):
    lesson: Optional[Lesson] = None


class MutationResult(FetchResult):
    pass


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    objectives: List[str] = Field(default_factory=list)
    logline: Optional[str] = None
    guiding_questions: List[str] = Field(default_factory=list)
    expansion_tips: List[str] = Field(default_factory=list)
    examples_to_add: List[str] = Field(default_factory=list)


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    author_tone: Optional[str] = None
    lessons: List[LessonCreate] = Field(..., min_length=1)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    published: Optional[bool] = None
    author_tone: Optional[str] = None

    @field_validator("title", "published", mode="before")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    logline: Optional[str] = None
    objectives: Optional[List[str]] = None
    guiding_questions: Optional[List[str]] = None
    expansion_tips: Optional[List[str]] = None
    examples_to_add: Optional[List[str]] = None

    @field_validator(
        "title",
        "objectives",
        "guiding_questions",
        "expansion_tips",
        "examples_to_add",
        mode="before",
    )
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class LessonOrder(BaseModel):
    lesson_ids: List[str] = Field(..., min_length=1)


class ExportOptions(BaseModel):
    format: Literal["md", "txt"]
    mode: Literal["single", "multi"]


class CourseFilter(BaseModel):
    search: str = ""
    author: str = ""
    status: Literal["all", "published", "draft"] = "all"
    validation: Literal["all", "validated", "not-validated", "warning", "error"] = "all"


class HealthResponse(BaseModel):
    status: str
