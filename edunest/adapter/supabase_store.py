"""
Supabase Record Store

Reads materials from a Supabase (PostgREST) database.

Tables:
- child_subjects(id, child_id, ...)      -> a student's scope
- materials(id, title, content_type, due_date, completed_at, grade_value,
            grade_max_value, grading_notes, lesson_json, parent_material_id,
            is_primary_lesson, child_subject_id)

Content type, completion and due-date predicates are pushed down to
PostgREST. Keyword, subject and low-grade predicates need text search over
the lesson blob or a computed ratio. When any of those are active the store
pages through every pushed-down match and evaluates them locally, so the
row limit never hides a match.

The supabase client is synchronous; every query runs in a worker thread.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Callable, List, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client, create_client

from ..common.config import StoreConfig
from ..common.schemas.material import Material
from ..retriever.filters import FilterCriteria
from ..retriever.store import RecordStore, StoreError

logger = logging.getLogger("edunest.adapter.supabase")

MATERIAL_COLUMNS = (
    "id, title, content_type, due_date, completed_at, "
    "grade_value, grade_max_value, grading_notes, lesson_json, "
    "parent_material_id, is_primary_lesson, child_subject_id"
)


class SupabaseRecordStore(RecordStore):
    """
    Record store on top of a supabase-py client.

    Usage:
        store = create_supabase_store(load_config().store)
        scope = await store.get_scope("student-uuid")
    """

    def __init__(
        self,
        client: Client,
        materials_table: str = "materials",
        scope_table: str = "child_subjects",
    ):
        """
        Initialize store.

        Args:
            client: supabase-py client (service role key, RLS bypassed)
            materials_table: Table holding materials
            scope_table: Table mapping students to child subjects
        """
        self._client = client
        self._materials_table = materials_table
        self._scope_table = scope_table

    async def _run(self, label: str, build: Callable[[], Any]) -> List[dict]:
        """Execute a query builder in a thread, mapping client errors to StoreError."""
        try:
            response = await asyncio.to_thread(lambda: build().execute())
        except (APIError, httpx.HTTPError) as e:
            raise StoreError(f"{label}: {e}") from e
        data = getattr(response, "data", None)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StoreError(f"{label}: unexpected response payload {type(data).__name__}")
        return data

    def _to_materials(self, rows: List[dict]) -> List[Material]:
        materials = []
        for row in rows:
            if not isinstance(row, dict) or row.get("id") is None:
                logger.warning("Skipping malformed material row: %r", row)
                continue
            try:
                materials.append(Material.from_row(row))
            except ValidationError as e:
                logger.warning("Skipping invalid material row %s: %s", row.get("id"), e)
        return materials

    async def get_scope(self, student_id: str) -> List[str]:
        rows = await self._run(
            "scope lookup",
            lambda: self._client.table(self._scope_table)
            .select("id")
            .eq("child_id", student_id),
        )
        scope = [str(row["id"]) for row in rows if isinstance(row, dict) and row.get("id")]
        logger.debug("Found %d child subjects for %s", len(scope), student_id)
        return scope

    def _candidate_query(
        self,
        scope_ids: Sequence[str],
        criteria: FilterCriteria,
        today: date,
    ):
        query = (
            self._client.table(self._materials_table)
            .select(MATERIAL_COLUMNS)
            .in_("child_subject_id", list(scope_ids))
        )

        if criteria.content_types:
            query = query.in_("content_type", list(criteria.content_types))

        if criteria.completed is True or criteria.low_grade:
            query = query.not_.is_("completed_at", "null")
        elif criteria.completed is False:
            query = query.is_("completed_at", "null")

        if criteria.low_grade:
            query = query.not_.is_("grade_value", "null").gt("grade_max_value", 0)

        if criteria.overdue:
            query = query.lt("due_date", today.isoformat()).is_("completed_at", "null")
        if criteria.due_today:
            query = query.gte("due_date", today.isoformat()).lt(
                "due_date", (today + timedelta(days=1)).isoformat()
            )
        if criteria.due_within_days is not None:
            horizon = today + timedelta(days=criteria.due_within_days + 1)
            query = (
                query.gte("due_date", today.isoformat())
                .lt("due_date", horizon.isoformat())
                .is_("completed_at", "null")
            )

        return query

    async def fetch_candidates(
        self,
        scope_ids: Sequence[str],
        criteria: FilterCriteria,
        today: date,
        limit: int,
    ) -> List[Material]:
        """
        Fetch candidate materials.

        With only pushed-down predicates this is one query capped at
        ``limit`` rows. With local predicates (text terms, low grade) the
        store scans ``limit``-sized pages until exhausted and returns every
        local match.
        """
        if not scope_ids:
            return []
        logger.debug("Fetching candidates with %s", criteria.to_dict())

        if not criteria.text_terms and not criteria.low_grade:
            rows = await self._run(
                "candidate fetch",
                lambda: self._candidate_query(scope_ids, criteria, today)
                .order("due_date")
                .limit(limit),
            )
            materials = self._to_materials(rows)
            logger.info("Store returned %d candidate materials", len(materials))
            return materials

        page_size = max(1, limit)
        start = 0
        scanned = 0
        materials = []
        while True:
            rows = await self._run(
                "candidate fetch",
                lambda start=start: self._candidate_query(scope_ids, criteria, today)
                .order("due_date")
                .order("id")
                .range(start, start + page_size - 1),
            )
            scanned += len(rows)
            materials.extend(m for m in self._to_materials(rows) if criteria.matches(m, today))
            if len(rows) < page_size:
                break
            start += page_size

        logger.info("Store scanned %d rows, %d candidate materials", scanned, len(materials))
        return materials

    async def get_material(
        self,
        material_id: str,
        scope_ids: Sequence[str],
    ) -> Optional[Material]:
        if not scope_ids:
            return None
        rows = await self._run(
            "material lookup",
            lambda: self._client.table(self._materials_table)
            .select(MATERIAL_COLUMNS)
            .eq("id", material_id)
            .in_("child_subject_id", list(scope_ids))
            .limit(1),
        )
        materials = self._to_materials(rows)
        return materials[0] if materials else None

    async def get_related(self, material: Material, limit: int = 5) -> List[Material]:
        parent = material.parent_material_id
        if not parent:
            return []
        rows = await self._run(
            "related lookup",
            lambda: self._client.table(self._materials_table)
            .select(MATERIAL_COLUMNS)
            .or_(f"parent_material_id.eq.{parent},id.eq.{parent}")
            .neq("id", material.id)
            .eq("child_subject_id", material.child_subject_id)
            .order("is_primary_lesson", desc=True)
            .order("title")
            .limit(limit),
        )
        return self._to_materials(rows)


def create_supabase_store(config: StoreConfig) -> SupabaseRecordStore:
    """
    Build a SupabaseRecordStore from configuration.

    Raises:
        ValueError: If the URL or service key is missing
    """
    if not config.url or not config.service_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the Supabase store"
        )
    client = create_client(config.url, config.service_key)
    logger.info("Supabase client created for %s", config.url)
    return SupabaseRecordStore(
        client,
        materials_table=config.materials_table,
        scope_table=config.scope_table,
    )
