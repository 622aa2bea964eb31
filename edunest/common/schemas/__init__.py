"""
EduNest Schemas

Materials as read from the record store.
"""

from .material import LessonContent, Material, MaterialType, parse_date, parse_datetime

__all__ = [
    "LessonContent",
    "Material",
    "MaterialType",
    "parse_date",
    "parse_datetime",
]
