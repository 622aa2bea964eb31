"""
Record Store

Abstract interface to wherever materials live, plus an in-memory
implementation for local runs and tests.

Stores push down whatever criteria they can express natively. The
searcher re-applies the full criteria afterwards, so a store may return
a superset of the matching materials but never drop a match.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from ..common.schemas.material import Material, parse_date
from .filters import FilterCriteria

logger = logging.getLogger("edunest.retriever.store")


class StoreError(Exception):
    """Record store could not be reached or returned garbage."""
    pass


class RecordStore(ABC):
    """
    Abstract base class for record stores.

    Each store must implement:
    - get_scope: child-subject ids a student may access
    - fetch_candidates: materials within scope, filtered as far as possible
    - get_material: single scoped lookup
    - get_related: materials sharing a parent material
    """

    @abstractmethod
    async def get_scope(self, student_id: str) -> List[str]:
        """
        Resolve the child-subject ids a student can see.

        Raises:
            StoreError: If the store is unavailable
        """
        pass

    @abstractmethod
    async def fetch_candidates(
        self,
        scope_ids: Sequence[str],
        criteria: FilterCriteria,
        today: date,
        limit: int,
    ) -> List[Material]:
        """
        Fetch candidate materials.

        Args:
            scope_ids: Child-subject ids from get_scope
            criteria: Filter criteria to push down where possible
            today: Reference date for date-relative predicates
            limit: Maximum number of rows to return

        Raises:
            StoreError: If the store is unavailable
        """
        pass

    @abstractmethod
    async def get_material(
        self,
        material_id: str,
        scope_ids: Sequence[str],
    ) -> Optional[Material]:
        pass

    @abstractmethod
    async def get_related(self, material: Material, limit: int = 5) -> List[Material]:
        pass


def related_sort_key(material: Material):
    """Primary lessons first, then title."""
    return (0 if material.is_primary_lesson else 1, material.title.casefold(), material.title)


class InMemoryRecordStore(RecordStore):
    """
    Record store backed by in-process dictionaries.

    Usage:
        store = InMemoryRecordStore(
            scopes={"student-1": ["cs-math"]},
            materials=[Material(id="m1", title="Fractions", child_subject_id="cs-math")],
        )
    """

    def __init__(
        self,
        scopes: Optional[Dict[str, List[str]]] = None,
        materials: Optional[Iterable[Material]] = None,
        failures: int = 0,
    ):
        """
        Initialize the store.

        Args:
            scopes: student id -> child-subject ids
            materials: Materials to serve
            failures: Number of calls that raise StoreError before the
                store starts answering (simulates an unreachable backend)
        """
        self._scopes = {k: list(v) for k, v in (scopes or {}).items()}
        self._materials: Dict[str, Material] = {m.id: m for m in (materials or [])}
        self._failures_left = failures
        self.calls = 0

    def _maybe_fail(self) -> None:
        self.calls += 1
        if self._failures_left > 0:
            self._failures_left -= 1
            raise StoreError("in-memory store configured to fail")

    async def get_scope(self, student_id: str) -> List[str]:
        self._maybe_fail()
        return list(self._scopes.get(student_id, []))

    async def fetch_candidates(
        self,
        scope_ids: Sequence[str],
        criteria: FilterCriteria,
        today: date,
        limit: int,
    ) -> List[Material]:
        self._maybe_fail()
        scope = set(scope_ids)
        matched = [
            m for m in self._materials.values()
            if m.child_subject_id in scope and criteria.matches(m, today)
        ]
        # Earliest due first, undated last
        matched.sort(key=lambda m: (parse_date(m.due_date) is None, parse_date(m.due_date) or date.min))
        logger.debug("In-memory store matched %d materials", len(matched))
        return matched[:limit]

    async def get_material(
        self,
        material_id: str,
        scope_ids: Sequence[str],
    ) -> Optional[Material]:
        self._maybe_fail()
        material = self._materials.get(material_id)
        if material is None or material.child_subject_id not in set(scope_ids):
            return None
        return material

    async def get_related(self, material: Material, limit: int = 5) -> List[Material]:
        self._maybe_fail()
        if not material.parent_material_id:
            return []
        parent = material.parent_material_id
        related = [
            m for m in self._materials.values()
            if m.id != material.id
            and m.child_subject_id == material.child_subject_id
            and (m.parent_material_id == parent or m.id == parent)
        ]
        related.sort(key=related_sort_key)
        return related[:limit]
