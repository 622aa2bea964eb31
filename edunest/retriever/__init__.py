"""
Retriever - Query Intent Resolution & Ranking

Key Components:
- IntentClassifier: Parses free-text queries into a QueryIntent
- build_filters: Maps an intent to store filter criteria
- RankingEngine: Orders candidates by educational priority
- Searcher: Runs the full pipeline against a RecordStore

Pipeline:
1. Classify the query (type, urgency, subject, content type, status, keywords)
2. Resolve the student's scope and fetch candidates
3. Apply criteria the store could not push down
4. Rank, overdue first, and truncate
"""

from .intent_classifier import (
    ContentType,
    IntentClassifier,
    IntentType,
    QueryIntent,
    StatusFilter,
    Urgency,
    describe_intent,
    split_scope_prefix,
)
from .filters import FilterCriteria, build_filters
from .ranker import RankedResult, RankingEngine
from .store import InMemoryRecordStore, RecordStore, StoreError
from .searcher import InvalidSearchRequest, Searcher, SearchResponse

__all__ = [
    "ContentType",
    "IntentClassifier",
    "IntentType",
    "QueryIntent",
    "StatusFilter",
    "Urgency",
    "describe_intent",
    "split_scope_prefix",
    "FilterCriteria",
    "build_filters",
    "RankedResult",
    "RankingEngine",
    "InMemoryRecordStore",
    "RecordStore",
    "StoreError",
    "InvalidSearchRequest",
    "Searcher",
    "SearchResponse",
]
