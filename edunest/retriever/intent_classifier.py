"""
Intent Classifier

Parses free-text student queries into a structured QueryIntent.
Classification is total: a query that matches nothing is a valid "mixed"
intent with every optional field unset.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Sequence, Tuple


class IntentType(str, Enum):
    """Dominant purpose of a query"""
    HOMEWORK = "homework"  # "What's due this week?"
    LESSON = "lesson"  # "Help me understand fractions"
    REVIEW = "review"  # "Go over my graded quizzes"
    MIXED = "mixed"  # Catch-all


class Urgency(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"


class ContentType(str, Enum):
    """Content types a query can ask for explicitly"""
    ASSIGNMENT = "assignment"
    WORKSHEET = "worksheet"
    QUIZ = "quiz"
    TEST = "test"
    LESSON = "lesson"
    READING = "reading"


class StatusFilter(str, Enum):
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"
    LOW_SCORES = "low_scores"


# Content-type sets implied by the intent type when no explicit type is asked for
HOMEWORK_CONTENT_TYPES = ("lesson", "worksheet", "quiz", "review")
LESSON_CONTENT_TYPES = ("lesson", "reading", "chapter")
REVIEW_CONTENT_TYPES = ("lesson", "worksheet", "quiz", "review")

MAX_KEYWORDS = 10


@dataclass(frozen=True)
class QueryIntent:
    """Structured interpretation of a free-text query"""
    type: IntentType
    urgency: Optional[Urgency] = None
    subject: Optional[str] = None
    content_type: Optional[ContentType] = None
    status: Optional[StatusFilter] = None
    keywords: Tuple[str, ...] = field(default_factory=tuple)
    original_query: str = ""

    @property
    def content_types(self) -> Tuple[str, ...]:
        """Content types this intent targets. Empty means no restriction."""
        if self.content_type is not None:
            return (self.content_type.value,)
        if self.type == IntentType.HOMEWORK:
            return HOMEWORK_CONTENT_TYPES
        if self.type == IntentType.LESSON:
            return LESSON_CONTENT_TYPES
        if self.type == IntentType.REVIEW:
            return REVIEW_CONTENT_TYPES
        return ()

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "urgency": self.urgency.value if self.urgency else None,
            "subject": self.subject,
            "content_type": self.content_type.value if self.content_type else None,
            "status": self.status.value if self.status else None,
            "keywords": list(self.keywords),
            "original_query": self.original_query,
        }


def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


class IntentClassifier:
    """
    Classifies student queries.

    Responsibilities:
    1. Extract normalized keywords
    2. Detect the dominant intent (homework, lesson, review)
    3. Extract subject, content type, urgency and completion status
    """

    HOMEWORK_PATTERNS = [
        _compile(r"\b(homework|assignments?|due|overdue|incomplete|finish|complete|work on)\b"),
        _compile(r"\b(what('s|\s+is)\s+(my|due))\b"),
        _compile(r"\b(need to (do|finish|complete))\b"),
    ]

    LESSON_PATTERNS = [
        _compile(r"\b(lessons?|learn|teach|understand|explain|study|review)\b"),
        _compile(r"\b(help\s+(me\s+)?(with|understand))\b"),
        _compile(r"\b(what\s+(is|are)|how\s+do)\b"),
    ]

    REVIEW_PATTERNS = [
        _compile(r"\b(review|revisit|go\s+over|practice|low\s+scores?|grade|graded)\b"),
        _compile(r"\b(completed|finished|done)\b"),
    ]

    # Ordered (label, pattern) tables; first match wins
    SUBJECT_PATTERNS: Sequence[Tuple[str, Pattern[str]]] = (
        ("math", _compile(r"\b(math|maths|mathematics|algebra|geometry|calculus|arithmetic)\b")),
        ("science", _compile(r"\b(science|biology|chemistry|physics)\b")),
        ("english", _compile(r"\b(english|language\s+arts|writing|reading|literature)\b")),
        ("history", _compile(r"\b(history|social\s+studies|geography)\b")),
        ("spanish", _compile(r"\b(spanish|espanol|español)\b")),
    )

    CONTENT_TYPE_PATTERNS: Sequence[Tuple[ContentType, Pattern[str]]] = (
        (ContentType.WORKSHEET, _compile(r"\b(worksheets?|work\s+sheets?)\b")),
        (ContentType.QUIZ, _compile(r"\b(quiz|quizzes)\b")),
        (ContentType.TEST, _compile(r"\b(tests?|exams?)\b")),
        (ContentType.ASSIGNMENT, _compile(r"\b(assignments?|projects?)\b")),
        (ContentType.LESSON, _compile(r"\b(lessons?|chapters?|reading)\b")),
    )

    URGENCY_PATTERNS: Sequence[Tuple[Urgency, Pattern[str]]] = (
        (Urgency.OVERDUE, _compile(r"\b(overdue|late|past\s+due|missed)\b")),
        (Urgency.DUE_TODAY, _compile(r"\b(due\s+today|today)\b")),
        (Urgency.DUE_SOON, _compile(r"\b(due\s+soon|upcoming|tomorrow)\b")),
    )

    # Checked in order; the three phrasings are mutually exclusive by construction
    STATUS_PATTERNS: Sequence[Tuple[StatusFilter, Pattern[str]]] = (
        (StatusFilter.INCOMPLETE, _compile(r"\b(incomplete|unfinished|not\s+done)\b")),
        (StatusFilter.COMPLETED, _compile(r"\b(completed|finished|done)\b")),
        (StatusFilter.LOW_SCORES, _compile(r"\b(low\s+scores?|poor\s+grades?|failed|below|under)\b")),
    )

    STOP_WORDS = frozenset({
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "by", "a", "an", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "can", "what", "where", "when", "why", "how",
        "i", "you", "he", "she", "it", "we", "they", "me", "my", "help",
    })

    _PUNCTUATION_RE = re.compile(r"[^\w\s]")

    def classify(self, query: Optional[str]) -> QueryIntent:
        """
        Classify a raw query.

        Args:
            query: Raw query text (None is treated as empty)

        Returns:
            QueryIntent; never raises
        """
        query = query or ""

        return QueryIntent(
            type=self._detect_type(query),
            urgency=self._first_match(self.URGENCY_PATTERNS, query),
            subject=self._first_match(self.SUBJECT_PATTERNS, query),
            content_type=self._first_match(self.CONTENT_TYPE_PATTERNS, query),
            status=self._first_match(self.STATUS_PATTERNS, query),
            keywords=tuple(self.extract_keywords(query)),
            original_query=query,
        )

    def extract_keywords(self, query: str) -> List[str]:
        """Lower-cased tokens longer than two characters, minus stop words."""
        stripped = self._PUNCTUATION_RE.sub("", query.lower())
        keywords = [
            word for word in stripped.split()
            if len(word) > 2 and word not in self.STOP_WORDS
        ]
        return keywords[:MAX_KEYWORDS]

    def _detect_type(self, query: str) -> IntentType:
        has_homework = any(p.search(query) for p in self.HOMEWORK_PATTERNS)
        has_lesson = any(p.search(query) for p in self.LESSON_PATTERNS)
        has_review = any(p.search(query) for p in self.REVIEW_PATTERNS)

        if has_homework and not has_lesson and not has_review:
            return IntentType.HOMEWORK
        if has_lesson and not has_homework and not has_review:
            return IntentType.LESSON
        # Retrospective language wins whenever present
        if has_review:
            return IntentType.REVIEW
        return IntentType.MIXED

    @staticmethod
    def _first_match(table, query: str):
        for label, pattern in table:
            if pattern.search(query):
                return label
        return None


# ============================================================================
# Helpers
# ============================================================================

_SCOPE_PREFIX = "child_id:"


def split_scope_prefix(raw: Optional[str]) -> Tuple[Optional[str], str]:
    """
    Split an optional leading ``child_id:<id>`` token off a query.

    Returns:
        (student_id or None, remaining query text)
    """
    text = (raw or "").strip()
    if not text.startswith(_SCOPE_PREFIX):
        return None, text
    head, _, rest = text.partition(" ")
    student_id = head[len(_SCOPE_PREFIX):].strip()
    return (student_id or None), rest.strip()


def describe_intent(intent: QueryIntent) -> str:
    """Human-readable summary, e.g. "Searching for overdue math worksheet materials"."""
    parts = []
    if intent.urgency == Urgency.OVERDUE:
        parts.append("overdue")
    if intent.status == StatusFilter.INCOMPLETE:
        parts.append("incomplete")
    if intent.subject:
        parts.append(intent.subject)
    if intent.content_type:
        parts.append(intent.content_type.value)
    description = " ".join(parts) if parts else intent.type.value
    return f"Searching for {description} materials"
