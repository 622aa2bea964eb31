"""
Filter Builder

Turns a QueryIntent into FilterCriteria: the semantic predicate a record
store should apply when fetching candidates.

Criteria never capture a clock reading. Date-relative predicates
(overdue, due today, due soon) are stored symbolically and resolved
against "today" only when evaluated, so building filters is a pure
function of the intent.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

from ..common.schemas.material import Material
from ..common.status import DUE_SOON_DAYS, is_due_soon, is_due_today, is_low_score, is_overdue
from .intent_classifier import QueryIntent, StatusFilter, Urgency


@dataclass(frozen=True)
class FilterCriteria:
    """Conjunction of retrieval predicates; unset fields impose nothing."""
    content_types: Tuple[str, ...] = field(default_factory=tuple)
    completed: Optional[bool] = None
    low_grade: bool = False
    overdue: bool = False
    due_today: bool = False
    due_within_days: Optional[int] = None
    keywords: Tuple[str, ...] = field(default_factory=tuple)
    subject: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self == FilterCriteria()

    @property
    def text_terms(self) -> Tuple[str, ...]:
        """Every free-text term the criteria search for."""
        terms = tuple(self.keywords)
        if self.subject:
            terms += (self.subject,)
        return terms

    def matches(self, material: Material, today: Optional[date] = None) -> bool:
        """Evaluate every predicate against a material."""
        if self.content_types and material.content_type not in self.content_types:
            return False

        if self.completed is True and material.completed_at is None:
            return False
        if self.completed is False and material.completed_at is not None:
            return False

        if self.low_grade and not is_low_score(material):
            return False

        if self.overdue and not is_overdue(material, today):
            return False
        if self.due_today and not is_due_today(material, today):
            return False
        if self.due_within_days is not None and not is_due_soon(material, today):
            return False

        if self.keywords or self.subject:
            haystacks = (material.title.lower(), material.searchable_body())
            if self.keywords and not any(
                keyword.lower() in text for keyword in self.keywords for text in haystacks
            ):
                return False
            if self.subject and not any(self.subject.lower() in text for text in haystacks):
                return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form; only active predicates are included."""
        data: Dict[str, Any] = {}
        if self.content_types:
            data["content_types"] = list(self.content_types)
        if self.completed is not None:
            data["completed"] = self.completed
        if self.low_grade:
            data["low_grade"] = True
        if self.overdue:
            data["overdue"] = True
        if self.due_today:
            data["due_today"] = True
        if self.due_within_days is not None:
            data["due_within_days"] = self.due_within_days
        if self.keywords:
            data["keywords"] = list(self.keywords)
        if self.subject:
            data["subject"] = self.subject
        return data


def build_filters(intent: QueryIntent) -> FilterCriteria:
    """
    Map an intent to filter criteria.

    Args:
        intent: Classified query intent

    Returns:
        FilterCriteria combining every active predicate with AND
    """
    completed = None
    low_grade = False
    if intent.status == StatusFilter.INCOMPLETE:
        completed = False
    elif intent.status == StatusFilter.COMPLETED:
        completed = True
    elif intent.status == StatusFilter.LOW_SCORES:
        completed = True
        low_grade = True

    overdue = intent.urgency == Urgency.OVERDUE
    due_today = intent.urgency == Urgency.DUE_TODAY
    due_within_days = DUE_SOON_DAYS if intent.urgency == Urgency.DUE_SOON else None

    return FilterCriteria(
        content_types=intent.content_types,
        completed=completed,
        low_grade=low_grade,
        overdue=overdue,
        due_today=due_today,
        due_within_days=due_within_days,
        keywords=tuple(intent.keywords),
        subject=intent.subject,
    )
