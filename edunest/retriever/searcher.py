"""
Searcher

Runs the search pipeline for one student query:
classify -> resolve scope -> build filters -> fetch -> filter -> rank -> truncate.

Store access is retried a fixed number of times with linear backoff.
When the store stays unreachable the search degrades to an empty,
flagged response instead of raising.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Iterator, List, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..common.config import SearchConfig
from ..common.schemas.material import Material
from ..common.status import current_date
from .filters import FilterCriteria, build_filters
from .intent_classifier import IntentClassifier, QueryIntent
from .ranker import RankedResult, RankingEngine
from .store import RecordStore, StoreError

logger = logging.getLogger("edunest.retriever.searcher")

T = TypeVar("T")


class InvalidSearchRequest(ValueError):
    """The caller did not supply what a search needs."""
    pass


@dataclass
class SearchResponse:
    """Ranked results for one query"""
    student_id: str
    intent: QueryIntent
    results: List[RankedResult] = field(default_factory=list)
    criteria: Optional[FilterCriteria] = None
    degraded: bool = False  # store unreachable, results are empty for that reason
    error: Optional[str] = None

    def __iter__(self) -> Iterator[RankedResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def materials(self) -> List[Material]:
        return [r.material for r in self.results]


class _StoreUnavailable(Exception):
    pass


class Searcher:
    """
    Search orchestrator.

    Holds no per-request state; one instance can serve concurrent searches.
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[SearchConfig] = None,
        classifier: Optional[IntentClassifier] = None,
        ranker: Optional[RankingEngine] = None,
        clock: Callable[[], date] = current_date,
    ):
        """
        Initialize searcher.

        Args:
            store: Record store to fetch materials from
            config: Result limits and retry policy
            classifier: Intent classifier (default instance if omitted)
            ranker: Ranking engine (default instance if omitted)
            clock: Returns "today"; injectable for tests
        """
        self._store = store
        self._config = config or SearchConfig()
        self._classifier = classifier or IntentClassifier()
        self._ranker = ranker or RankingEngine()
        self._clock = clock

    def today(self) -> date:
        """Reference date used for urgency predicates."""
        return self._clock()

    async def search(self, student_id: str, raw_query: str) -> SearchResponse:
        """
        Search a student's materials.

        Args:
            student_id: Student (child) identifier; required
            raw_query: Free-text query

        Returns:
            SearchResponse; empty and degraded if the store could not be reached

        Raises:
            InvalidSearchRequest: If student_id is missing
        """
        student_id = self._require_student(student_id)
        today = self.today()

        intent = self._classifier.classify(raw_query)
        logger.info(
            "Search for %s: type=%s urgency=%s subject=%s content_type=%s status=%s",
            student_id,
            intent.type.value,
            intent.urgency.value if intent.urgency else None,
            intent.subject,
            intent.content_type.value if intent.content_type else None,
            intent.status.value if intent.status else None,
        )

        criteria = build_filters(intent)
        response = SearchResponse(student_id=student_id, intent=intent, criteria=criteria)

        try:
            scope_ids = await self._with_retry("scope lookup", lambda: self._store.get_scope(student_id))
            if not scope_ids:
                logger.warning("No child subjects found for %s", student_id)
                return response

            candidates = await self._with_retry(
                "candidate fetch",
                lambda: self._store.fetch_candidates(
                    scope_ids, criteria, today, self._config.candidate_limit
                ),
            )
        except _StoreUnavailable as e:
            response.degraded = True
            response.error = str(e)
            return response

        matched = [m for m in candidates if criteria.matches(m, today)]
        logger.debug("%d of %d candidates match %s", len(matched), len(candidates), criteria.to_dict())

        ranked = self._ranker.rank_with_scores(matched, intent, today)
        response.results = ranked[: self._config.max_results]
        logger.info("Returning %d ranked results for %s", len(response.results), student_id)
        return response

    async def get_material(self, student_id: str, material_id: str) -> Optional[Material]:
        """
        Look up one material within the student's scope.

        Returns None when the material is not visible to the student or the
        store is unavailable.
        """
        student_id = self._require_student(student_id)
        try:
            scope_ids = await self._with_retry("scope lookup", lambda: self._store.get_scope(student_id))
            if not scope_ids:
                return None
            material = await self._with_retry(
                "material lookup", lambda: self._store.get_material(material_id, scope_ids)
            )
        except _StoreUnavailable:
            return None

        if material is None:
            logger.warning("Material %s not found for %s", material_id, student_id)
        return material

    async def get_related(self, material: Material, limit: int = 5) -> List[Material]:
        """Materials sharing the same parent lesson; [] on store failure."""
        if not material.parent_material_id:
            return []
        try:
            return await self._with_retry(
                "related lookup", lambda: self._store.get_related(material, limit)
            )
        except _StoreUnavailable:
            return []

    @staticmethod
    def _require_student(student_id: Optional[str]) -> str:
        if not isinstance(student_id, str) or not student_id.strip():
            raise InvalidSearchRequest("student_id is required")
        return student_id.strip()

    def _retrying(self, label: str) -> AsyncRetrying:
        """Retry policy for store calls: StoreError only, linear backoff."""
        attempts = max(1, self._config.store_attempts)
        backoff = self._config.retry_backoff_seconds

        def _log_attempt(retry_state: RetryCallState) -> None:
            logger.warning(
                "Store %s attempt %d/%d failed: %s",
                label,
                retry_state.attempt_number,
                attempts,
                retry_state.outcome.exception(),
            )

        return AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=backoff, increment=backoff),
            retry=retry_if_exception_type(StoreError),
            before_sleep=_log_attempt,
            sleep=asyncio.sleep,
            reraise=True,
        )

    async def _with_retry(self, label: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            async for attempt in self._retrying(label):
                with attempt:
                    return await call()
        except StoreError as e:
            logger.error("Store %s failed after %d attempts; search degraded",
                         label, max(1, self._config.store_attempts))
            raise _StoreUnavailable(f"{label} failed: {e}") from e
        raise _StoreUnavailable(f"{label} failed")
