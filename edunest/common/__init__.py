"""
EduNest Common Module

Configuration, the Material schema and shared status predicates.
"""

from .config import EdunestConfig, SearchConfig, StoreConfig, load_config
from .schemas import LessonContent, Material, MaterialType
from .status import (
    grade_ratio,
    is_due_soon,
    is_low_score,
    is_overdue,
    status_summary,
    urgency_label,
)

__all__ = [
    "EdunestConfig",
    "SearchConfig",
    "StoreConfig",
    "load_config",
    "LessonContent",
    "Material",
    "MaterialType",
    "grade_ratio",
    "is_due_soon",
    "is_low_score",
    "is_overdue",
    "status_summary",
    "urgency_label",
]
