"""
EduNest MCP Server.

Transport: stdio.

Exposes the search pipeline as MCP tools:
- search: ranked materials for a student query
- fetch:  one material with its status summary and related materials

Expected MCP Tool Return Format:
{
    "ok": bool,
    "results": Any,          # Present if ok is True
    "error": str            # Present if ok is False
}
"""

import argparse
import logging
import signal
import sys
from typing import Annotated, Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from ..common.config import load_config
from ..common.schemas.material import Material
from ..common.status import status_summary
from ..retriever.intent_classifier import describe_intent, split_scope_prefix
from ..retriever.ranker import RankedResult
from ..retriever.searcher import InvalidSearchRequest, Searcher

logger = logging.getLogger("edunest.mcp")


def _material_entry(material: Material, today) -> Dict[str, Any]:
    return {
        "id": material.id,
        "title": material.title,
        "content_type": material.content_type,
        "due_date": material.due_date.isoformat() if material.due_date else None,
        "status_summary": status_summary(material, today),
    }


def _result_entry(result: RankedResult, today) -> Dict[str, Any]:
    entry = _material_entry(result.material, today)
    entry["relevance_score"] = result.relevance_score
    entry["position"] = result.position
    return entry


class SearchServerApp:
    """
    MCP application wrapping a Searcher.

    Student ids are always explicit: either the student_id argument or a
    leading ``child_id:<id>`` token in the query.
    """
    def __init__(
            self,
            searcher: Searcher,
            mcp_server_name: str = "edunest-search",
        ) -> None:
        """
        Args:
            searcher (Searcher): Search orchestrator bound to a record store.
            mcp_server_name (str): The name of the MCP server.
        """
        self.searcher = searcher
        self.mcp = FastMCP(name=mcp_server_name)

        # ---------- MCP Tools: Search ---------- #
        @self.mcp.tool(
            name="search",
            description=(
                "Search a student's lessons, assignments, worksheets, quizzes and tests. "
                "Understands intent such as overdue or upcoming work, subjects, "
                "incomplete or completed work and low scores. "
                "Overdue work is always listed first."
            ),
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_search(
            query: Annotated[str, Field(description="free-text search query, optionally prefixed with child_id:<uuid>")],
            student_id: Annotated[Optional[str], Field(description="UUID of the student (child)")] = None,
        ) -> Dict[str, Any]:
            """
            Run the search pipeline.

            Returns:
                Dict[str, Any]: ranked results, the parsed intent and whether
                the search was degraded by store failures.
            """
            prefixed_id, text = split_scope_prefix(query)
            resolved_id = student_id or prefixed_id
            try:
                response = await self.searcher.search(resolved_id, text)
            except InvalidSearchRequest as exc:
                raise ToolError(f"Invalid search request: {exc}") from exc

            today = self.searcher.today()
            payload: Dict[str, Any] = {
                "ok": True,
                "degraded": response.degraded,
                "intent": response.intent.to_dict(),
                "description": describe_intent(response.intent),
                "results": [_result_entry(r, today) for r in response.results],
            }
            if response.degraded:
                payload["error"] = response.error
            return payload

        # ---------- MCP Tools: Fetch ---------- #
        @self.mcp.tool(
            name="fetch",
            description="Get the complete content of one material, with related materials.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False)
        )
        async def tool_fetch(
            student_id: Annotated[str, Field(description="UUID of the student (child)")],
            material_id: Annotated[str, Field(description="material identifier")],
        ) -> Dict[str, Any]:
            """
            Fetch one material within the student's scope.

            Returns:
                Dict[str, Any]: the material, its status summary and related materials.
            """
            try:
                material = await self.searcher.get_material(student_id, material_id)
            except InvalidSearchRequest as exc:
                raise ToolError(f"Invalid fetch request: {exc}") from exc

            if material is None:
                return {"ok": False, "error": f"Material {material_id} not found"}

            today = self.searcher.today()
            related = await self.searcher.get_related(material)
            return {
                "ok": True,
                "material": material.model_dump(mode="json"),
                "status_summary": status_summary(material, today),
                "related": [_material_entry(m, today) for m in related],
            }

    def run(self) -> None:
        """Runs the MCP server using stdio transport."""
        self.mcp.run(transport="stdio")


def main() -> None:
    load_dotenv()
    config = load_config()

    parser = argparse.ArgumentParser(description="Run the EduNest search MCP server (stdio).")
    parser.add_argument(
        "--server-name",
        default=config.server.name,
        help="Advertised MCP server name.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (stderr).",
    )
    args = parser.parse_args()

    # stdout carries the MCP transport
    logging.basicConfig(
        stream=sys.stderr,
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from ..adapter.supabase_store import create_supabase_store

    store = create_supabase_store(config.store)
    app = SearchServerApp(
        searcher=Searcher(store, config.search),
        mcp_server_name=args.server_name,
    )

    def _handle_shutdown(signum, frame):
        raise SystemExit(0)
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is not None:
            signal.signal(sig, _handle_shutdown)

    app.run()


if __name__ == "__main__":
    main()
