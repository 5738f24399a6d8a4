"""Tests for the MCP server wiring."""

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from graphmem_lite.errors import EntityNotFoundError, StorageError
from graphmem_lite.server import _run, build_server

EXPECTED_TOOLS = {
    "create_entities",
    "create_relations",
    "add_observations",
    "delete_entities",
    "delete_observations",
    "delete_relations",
    "create_context",
    "optimize_memory",
    "read_graph",
    "search_nodes",
    "open_nodes",
    "analyze_relationships",
    "find_similar_entities",
    "get_entity_timeline",
    "get_entity_quality",
    "get_memory_stats",
    "summarize_memory",
}


class TestBuildServer:
    """Test tool registration."""

    @pytest.mark.asyncio
    async def test_all_tools_registered(self, manager):
        mcp = build_server(manager)
        tools = await mcp.list_tools()
        assert {tool.name for tool in tools} == EXPECTED_TOOLS

    @pytest.mark.asyncio
    async def test_tools_documented(self, manager):
        for tool in await build_server(manager).list_tools():
            assert tool.description


class TestErrorMapping:
    """Test that store errors become tool errors."""

    def test_not_found(self):
        def missing():
            raise EntityNotFoundError("Ghost")

        with pytest.raises(ToolError, match="Entity with name Ghost not found"):
            _run("test", missing)

    def test_storage_error(self):
        def broken():
            raise StorageError("Corrupt memory log", "/tmp/x")

        with pytest.raises(ToolError, match="Corrupt memory log"):
            _run("test", broken)

    def test_bad_input(self):
        def invalid():
            raise ValueError("Unrecognized expiry specification: 'soon'")

        with pytest.raises(ToolError, match="Unrecognized expiry"):
            _run("test", invalid)

    def test_passes_result_through(self):
        assert _run("test", lambda x: x, "ok") == "ok"
