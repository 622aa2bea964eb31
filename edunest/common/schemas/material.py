"""
Material Schema

A Material is one educational record (lesson, worksheet, quiz, test, ...)
belonging to a student. Materials are owned by the record store; the
search core only reads and reorders them.

Lesson bodies arrive from the store as JSON blobs. They are parsed once into
a typed LessonContent sub-document where every field is optional.
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("edunest.schemas.material")


# ============================================================================
# Enums
# ============================================================================

class MaterialType(str, Enum):
    """Content types known to the store"""
    LESSON = "lesson"
    READING = "reading"
    CHAPTER = "chapter"
    ASSIGNMENT = "assignment"
    WORKSHEET = "worksheet"
    QUIZ = "quiz"
    TEST = "test"
    NOTES = "notes"
    READING_MATERIAL = "reading_material"
    REVIEW = "review"
    OTHER = "other"


# ============================================================================
# Date coercion
# ============================================================================

def parse_date(value: Any) -> Optional[date]:
    """Coerce a store value into a calendar date.

    Accepts date, datetime, or ISO-8601 strings ("2024-03-01",
    "2024-03-01T10:00:00Z"). Anything else yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Coerce a store value into a datetime, or None if it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


# ============================================================================
# Sub-models
# ============================================================================

class LessonContent(BaseModel):
    """Structured body of a lesson or worksheet"""
    learning_objectives: List[str] = Field(default_factory=list)
    main_content_summary_or_extract: Optional[str] = None
    subject_keywords_or_subtopics: List[str] = Field(default_factory=list)
    tasks_or_questions: List[str] = Field(default_factory=list)
    worksheet_questions: List[str] = Field(default_factory=list)
    answer_key: Dict[str, str] = Field(default_factory=dict)
    additional_notes: Optional[str] = None

    @field_validator(
        "learning_objectives",
        "subject_keywords_or_subtopics",
        "tasks_or_questions",
        "worksheet_questions",
        mode="before",
    )
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v) for v in value if v is not None]
        return []

    @field_validator("answer_key", mode="before")
    @classmethod
    def _coerce_answer_key(cls, value: Any) -> Dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {str(k): str(v) for k, v in value.items()}

    @field_validator("main_content_summary_or_extract", "additional_notes", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @classmethod
    def parse(cls, raw: Any) -> Optional["LessonContent"]:
        """Parse a lesson blob (dict or JSON string). Malformed input -> None."""
        if raw is None or raw == "":
            return None
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring unparsable lesson_json blob")
                return None
        if not isinstance(raw, dict):
            return None
        return cls.model_validate(raw)

    def searchable_text(self) -> str:
        """Lower-cased body text used for substring predicates."""
        parts: List[str] = []
        parts.extend(self.learning_objectives)
        if self.main_content_summary_or_extract:
            parts.append(self.main_content_summary_or_extract)
        parts.extend(self.subject_keywords_or_subtopics)
        parts.extend(self.tasks_or_questions)
        parts.extend(self.worksheet_questions)
        for key, value in self.answer_key.items():
            parts.append(f"{key} {value}")
        if self.additional_notes:
            parts.append(self.additional_notes)
        return "\n".join(parts).lower()


# ============================================================================
# Main Schema
# ============================================================================

class Material(BaseModel):
    """
    One educational record.

    Grades are meaningful only when both values are present and the maximum
    is positive; everything else is treated as ungraded.
    """
    id: str
    title: str = Field(default="Untitled")
    content_type: str = Field(default=MaterialType.OTHER.value)
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    grade_value: Optional[float] = None
    grade_max_value: Optional[float] = None
    is_primary_lesson: Optional[bool] = None

    grading_notes: Optional[str] = None
    parent_material_id: Optional[str] = None
    child_subject_id: Optional[str] = None
    lesson: Optional[LessonContent] = None

    @field_validator("id", "parent_material_id", "child_subject_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        if value is None:
            return "Untitled"
        return str(value)

    @field_validator("content_type", mode="before")
    @classmethod
    def _coerce_content_type(cls, value: Any) -> str:
        if isinstance(value, MaterialType):
            return value.value
        if not value:
            return MaterialType.OTHER.value
        return str(value).strip().lower()

    @field_validator("due_date", mode="before")
    @classmethod
    def _coerce_due_date(cls, value: Any) -> Optional[date]:
        return parse_date(value)

    @field_validator("completed_at", mode="before")
    @classmethod
    def _coerce_completed_at(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    @field_validator("grade_value", "grade_max_value", mode="before")
    @classmethod
    def _coerce_grade(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("lesson", mode="before")
    @classmethod
    def _coerce_lesson(cls, value: Any) -> Any:
        if isinstance(value, LessonContent):
            return value
        return LessonContent.parse(value)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def searchable_body(self) -> str:
        """Lower-cased lesson body, empty when there is none."""
        if self.lesson is None:
            return ""
        return self.lesson.searchable_text()

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Material":
        """Build a Material from a store row (``lesson_json`` column)."""
        data = dict(row)
        if "lesson" not in data:
            data["lesson"] = data.pop("lesson_json", None)
        else:
            data.pop("lesson_json", None)
        return cls.model_validate(data)
