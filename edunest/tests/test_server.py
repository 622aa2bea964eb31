# tests/test_server.py
from datetime import date, datetime, timedelta, timezone

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from edunest.common.config import SearchConfig
from edunest.common.schemas.material import Material
from edunest.retriever.searcher import Searcher
from edunest.retriever.store import InMemoryRecordStore
from edunest.server.server import SearchServerApp

TODAY = date(2024, 3, 15)
STUDENT = "7b1e4c2a-5f0d-4a8e-9c3b-2d6f8e1a0b4c"


def _data(result):
    return getattr(result, "data", None) or getattr(result, "structured", None) \
           or getattr(result, "structured_content", None)


@pytest.fixture
def store():
    return InMemoryRecordStore(
        scopes={STUDENT: ["cs-math"]},
        materials=[
            Material(id="ws-4", title="Math Worksheet 4", content_type="worksheet",
                     child_subject_id="cs-math", due_date=TODAY - timedelta(days=3)),
            Material(id="ws-5", title="Math Worksheet 5", content_type="worksheet",
                     child_subject_id="cs-math", due_date=TODAY + timedelta(days=5),
                     parent_material_id="lesson-1"),
            Material(id="lesson-1", title="Fractions Lesson", content_type="lesson",
                     child_subject_id="cs-math", is_primary_lesson=True,
                     lesson={"learning_objectives": ["Compare fractions"],
                             "tasks_or_questions": ["1/2 vs 1/3"]}),
            Material(id="quiz-1", title="Fractions Quiz", content_type="quiz",
                     child_subject_id="cs-math",
                     completed_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
                     grade_value=6, grade_max_value=10),
        ],
    )


@pytest.fixture
def mcp_server(store):
    """FastMCP instance over an in-memory store with a fixed clock."""
    searcher = Searcher(store, SearchConfig(retry_backoff_seconds=0.0), clock=lambda: TODAY)
    app = SearchServerApp(searcher=searcher, mcp_server_name="test-edunest")
    return app.mcp


@pytest.mark.asyncio
async def test_tools_registered(mcp_server):
    async with Client(mcp_server) as client:
        tools = await client.list_tools()
        names = [t.name for t in tools]
        assert "search" in names
        assert "fetch" in names


# ----------- Search Tool Tests ----------- #

@pytest.mark.asyncio
async def test_search_overdue_first(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "search", {"query": "math worksheets", "student_id": STUDENT}
        )
        data = _data(result)

        assert data is not None, "No data returned from tool call"
        assert data.get("ok") is True
        assert data.get("degraded") is False
        assert [r["id"] for r in data["results"]] == ["ws-4", "ws-5"]
        assert data["results"][0]["position"] == 1
        assert data["results"][0]["status_summary"]["urgency"] == "overdue"
        assert data["intent"]["content_type"] == "worksheet"


@pytest.mark.asyncio
async def test_search_with_child_id_prefix(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "search", {"query": f"child_id:{STUDENT} overdue math worksheets"}
        )
        data = _data(result)

        assert data.get("ok") is True
        assert [r["id"] for r in data["results"]] == ["ws-4"]
        assert data["description"] == "Searching for overdue math worksheet materials"
        assert data["intent"]["original_query"] == "overdue math worksheets"


@pytest.mark.asyncio
async def test_search_without_student_is_rejected(mcp_server):
    async with Client(mcp_server) as client:
        with pytest.raises(ToolError):
            await client.call_tool("search", {"query": "overdue math worksheets"})


@pytest.mark.asyncio
async def test_search_degraded_when_store_down(store):
    store._failures_left = 100
    searcher = Searcher(store, SearchConfig(retry_backoff_seconds=0.0), clock=lambda: TODAY)
    app = SearchServerApp(searcher=searcher, mcp_server_name="test-edunest")

    async with Client(app.mcp) as client:
        result = await client.call_tool(
            "search", {"query": "math", "student_id": STUDENT}
        )
        data = _data(result)

        assert data.get("ok") is True
        assert data.get("degraded") is True
        assert data.get("results") == []
        assert "scope lookup" in data.get("error", "")


# ----------- Fetch Tool Tests ----------- #

@pytest.mark.asyncio
async def test_fetch_material_with_related(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "fetch", {"student_id": STUDENT, "material_id": "ws-5"}
        )
        data = _data(result)

        assert data.get("ok") is True
        assert data["material"]["title"] == "Math Worksheet 5"
        assert data["status_summary"]["status"] == "incomplete"
        assert [m["id"] for m in data["related"]] == ["lesson-1"]


@pytest.mark.asyncio
async def test_fetch_graded_material(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "fetch", {"student_id": STUDENT, "material_id": "quiz-1"}
        )
        data = _data(result)

        assert data.get("ok") is True
        assert data["status_summary"]["grade_percentage"] == 60
        assert data["status_summary"]["low_score"] is True
        assert data["related"] == []


@pytest.mark.asyncio
async def test_fetch_unknown_material(mcp_server):
    async with Client(mcp_server) as client:
        result = await client.call_tool(
            "fetch", {"student_id": STUDENT, "material_id": "nope"}
        )
        data = _data(result)

        assert data.get("ok") is False
        assert "nope" in data.get("error", "")
