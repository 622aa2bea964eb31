"""
Material Status Predicates

Pure functions over a Material and "today". Ranking, filtering and any
presentation layer share these so that urgency and grade semantics are
defined in exactly one place.

All date comparisons use calendar-day granularity.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from .schemas.material import Material, parse_date

LOW_SCORE_THRESHOLD = 0.75
DUE_SOON_DAYS = 3


def current_date() -> date:
    """Today's date in UTC"""
    return datetime.now(timezone.utc).date()


def _resolve_today(today: Optional[date]) -> date:
    if today is None:
        return current_date()
    if isinstance(today, datetime):
        return today.date()
    return today


def _due(material: Material) -> Optional[date]:
    # Materials built without validation may still carry raw strings
    return parse_date(material.due_date)


def days_until_due(material: Material, today: Optional[date] = None) -> Optional[int]:
    """Whole days until the due date (negative when past), None without a due date."""
    due = _due(material)
    if due is None:
        return None
    return (due - _resolve_today(today)).days


def is_overdue(material: Material, today: Optional[date] = None) -> bool:
    """Incomplete work whose due date is strictly before today."""
    if material.completed_at is not None:
        return False
    days = days_until_due(material, today)
    return days is not None and days < 0


def is_due_soon(material: Material, today: Optional[date] = None) -> bool:
    """Incomplete work due between today and three days from now, inclusive."""
    if material.completed_at is not None:
        return False
    days = days_until_due(material, today)
    return days is not None and 0 <= days <= DUE_SOON_DAYS


def is_due_today(material: Material, today: Optional[date] = None) -> bool:
    return days_until_due(material, today) == 0


def grade_ratio(material: Material) -> Optional[float]:
    """value / max, or None when the material is ungraded or malformed."""
    value = material.grade_value
    maximum = material.grade_max_value
    if value is None or maximum is None:
        return None
    try:
        value = float(value)
        maximum = float(maximum)
    except (TypeError, ValueError):
        return None
    if maximum <= 0:
        return None
    return value / maximum


def grade_percentage(material: Material) -> Optional[int]:
    ratio = grade_ratio(material)
    if ratio is None:
        return None
    return round(ratio * 100)


def is_low_score(material: Material) -> bool:
    """Graded material below 75%."""
    ratio = grade_ratio(material)
    return ratio is not None and ratio < LOW_SCORE_THRESHOLD


def grade_letter(percentage: Optional[int]) -> Optional[str]:
    """Letter grade for a percentage (A >= 90, B >= 80, C >= 70, D >= 60, else F)."""
    if percentage is None:
        return None
    if percentage >= 90:
        return "A"
    if percentage >= 80:
        return "B"
    if percentage >= 70:
        return "C"
    if percentage >= 60:
        return "D"
    return "F"


def urgency_label(material: Material, today: Optional[date] = None) -> Optional[str]:
    """overdue / due_today / due_soon for incomplete work, otherwise None."""
    if material.completed_at is not None:
        return None
    days = days_until_due(material, today)
    if days is None:
        return None
    if days < 0:
        return "overdue"
    if days == 0:
        return "due_today"
    if days <= DUE_SOON_DAYS:
        return "due_soon"
    return None


def status_summary(material: Material, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Structured status block for a material.

    This is what a presentation layer renders badges from. Keys are only
    present when they carry information.
    """
    today = _resolve_today(today)
    summary: Dict[str, Any] = {
        "content_type": material.content_type,
        "status": "completed" if material.completed_at is not None else "incomplete",
    }

    due = _due(material)
    if due is not None:
        summary["due_date"] = due.isoformat()
        urgency = urgency_label(material, today)
        if urgency:
            summary["urgency"] = urgency
            days = (due - today).days
            if days < 0:
                summary["days_overdue"] = -days
            else:
                summary["days_until_due"] = days

    percentage = grade_percentage(material)
    if percentage is not None:
        summary["grade_percentage"] = percentage
        summary["grade_raw"] = f"{_fmt(material.grade_value)}/{_fmt(material.grade_max_value)}"
        summary["grade_level"] = grade_letter(percentage)
        summary["low_score"] = is_low_score(material)

    if material.completed_at is not None:
        summary["completed_date"] = material.completed_at.isoformat()

    if material.lesson is not None:
        lesson = material.lesson
        if lesson.learning_objectives:
            summary["learning_objectives"] = list(lesson.learning_objectives)
        if lesson.subject_keywords_or_subtopics:
            summary["key_topics"] = lesson.subject_keywords_or_subtopics[:5]
        if lesson.tasks_or_questions:
            summary["question_count"] = len(lesson.tasks_or_questions)
        if lesson.worksheet_questions:
            summary["worksheet_question_count"] = len(lesson.worksheet_questions)

    return summary


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "?"
    if float(value).is_integer():
        return str(int(value))
    return str(value)
