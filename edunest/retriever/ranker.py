"""
Ranking Engine

Orders candidate materials by educational priority.

Overdue work always sorts first, whatever the query asked for. Within
that split, materials are ordered by an additive relevance score and
then by a chain of tie-breakers ending in the title, so identical
inputs always produce identical output.
"""

from dataclasses import dataclass
from datetime import date
from functools import cmp_to_key
from typing import List, Optional, Sequence

from ..common.schemas.material import Material, parse_date
from ..common.status import current_date, grade_ratio, is_due_soon, is_low_score, is_overdue
from .intent_classifier import IntentType, QueryIntent, StatusFilter, Urgency

# Relevance bonuses
CONTENT_TYPE_BONUS = 10
KEYWORD_BONUS = 5
SUBJECT_BONUS = 8
STATUS_BONUS = 15
LOW_SCORE_BONUS = 20
OVERDUE_BONUS = 25
DUE_SOON_BONUS = 12
PRIMARY_LESSON_BONUS = 8


@dataclass
class RankedResult:
    """A material with the score it was ranked by"""
    material: Material
    relevance_score: int
    position: int = 0

    @property
    def id(self) -> str:
        return self.material.id

    @property
    def title(self) -> str:
        return self.material.title


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


class RankingEngine:
    """
    Scores and orders materials against a QueryIntent.

    Comparator priority:
    1. Overdue before not overdue
    2. Higher relevance score
    3. Homework queries: incomplete before completed
    4. Both incomplete with due dates: earlier due date
    5. Low-score queries: lower grade percentage
    6. Title (case-insensitive)
    """

    def relevance_score(
        self,
        material: Material,
        intent: QueryIntent,
        today: Optional[date] = None,
    ) -> int:
        """Sum of the independently triggered bonuses for a material."""
        today = today or current_date()
        score = 0

        content_types = intent.content_types
        if not content_types or material.content_type in content_types:
            score += CONTENT_TYPE_BONUS

        title = material.title.lower()
        score += KEYWORD_BONUS * sum(1 for keyword in intent.keywords if keyword.lower() in title)

        if intent.subject and intent.subject.lower() in title:
            score += SUBJECT_BONUS

        completed = material.completed_at is not None
        if intent.status == StatusFilter.INCOMPLETE and not completed:
            score += STATUS_BONUS
        elif intent.status == StatusFilter.COMPLETED and completed:
            score += STATUS_BONUS

        if intent.status == StatusFilter.LOW_SCORES and is_low_score(material):
            score += LOW_SCORE_BONUS

        if intent.urgency == Urgency.OVERDUE and is_overdue(material, today):
            score += OVERDUE_BONUS
        elif intent.urgency == Urgency.DUE_SOON and is_due_soon(material, today):
            score += DUE_SOON_BONUS

        if intent.type == IntentType.LESSON and material.is_primary_lesson:
            score += PRIMARY_LESSON_BONUS

        return score

    def rank_with_scores(
        self,
        materials: Sequence[Material],
        intent: QueryIntent,
        today: Optional[date] = None,
    ) -> List[RankedResult]:
        """
        Rank materials and keep their scores.

        Args:
            materials: Candidate set (not mutated)
            intent: Classified query intent
            today: Reference date, defaults to the current UTC date

        Returns:
            RankedResult list in rank order, positions starting at 1
        """
        today = today or current_date()
        entries = [
            (m, self.relevance_score(m, intent, today), is_overdue(m, today))
            for m in materials
        ]

        def compare(x, y) -> int:
            a, a_score, a_overdue = x
            b, b_score, b_overdue = y

            if a_overdue != b_overdue:
                return -1 if a_overdue else 1

            if a_score != b_score:
                return b_score - a_score

            a_done = a.completed_at is not None
            b_done = b.completed_at is not None

            if intent.type == IntentType.HOMEWORK and a_done != b_done:
                return 1 if a_done else -1

            if not a_done and not b_done:
                a_due = parse_date(a.due_date)
                b_due = parse_date(b.due_date)
                if a_due is not None and b_due is not None and a_due != b_due:
                    return -1 if a_due < b_due else 1

            if intent.status == StatusFilter.LOW_SCORES:
                a_ratio = grade_ratio(a)
                b_ratio = grade_ratio(b)
                if a_ratio is not None and b_ratio is not None and a_ratio != b_ratio:
                    return -1 if a_ratio < b_ratio else 1

            by_title = _cmp(a.title.casefold(), b.title.casefold())
            if by_title:
                return by_title
            return _cmp(a.title, b.title)

        ordered = sorted(entries, key=cmp_to_key(compare))
        return [
            RankedResult(material=m, relevance_score=score, position=i)
            for i, (m, score, _) in enumerate(ordered, start=1)
        ]

    def rank(
        self,
        materials: Sequence[Material],
        intent: QueryIntent,
        today: Optional[date] = None,
    ) -> List[Material]:
        """Rank materials; a stable, deterministic total order."""
        return [r.material for r in self.rank_with_scores(materials, intent, today)]
