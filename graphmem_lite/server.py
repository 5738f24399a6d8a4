"""MCP Server for GraphMem Lite.

Exposes the knowledge-graph memory through MCP tools. The server is built
around an explicit KnowledgeGraphManager passed to ``build_server``; only
``main()`` constructs one from the environment.
"""

from typing import Annotated

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from graphmem_lite import tools
from graphmem_lite.config import Config
from graphmem_lite.db.manager import KnowledgeGraphManager
from graphmem_lite.errors import EntityNotFoundError, GraphMemError
from graphmem_lite.log_config import get_logger
from graphmem_lite.tools import (
    EntityInput,
    ObservationDeletion,
    ObservationInput,
    RelationInput,
    RelationKey,
)

log = get_logger("server")

INSTRUCTIONS = """GraphMem Lite: persistent knowledge-graph memory.

## MODEL

- **Entities**: named, typed nodes with observations and tags
- **Relations**: directed, typed edges (from, to, relationType) with a derived strength
- **Contexts**: prioritized, expiring notes over a set of entities; they raise
  the priority of the entities they mention
- **Patterns**: derived pairs of related entities that share observations/tags

## USAGE

- Record knowledge with `create_entities`, `create_relations`, `add_observations`
- Recall with `search_nodes` (substring match) or `open_nodes` (exact names)
- Dig deeper with `analyze_relationships`, `find_similar_entities`, `get_entity_timeline`
- Capture reasoning with `create_context`; run `optimize_memory` to expire old contexts

Note: `search_nodes` and `open_nodes` count as accesses and update entity
access metadata. Relations with strength <= 0.5 are hidden from search.
"""


def _run(tool_name: str, fn, *args, **kwargs) -> str:
    """Call a tool handler, turning store errors into MCP tool errors."""
    log.info(f"Tool: {tool_name} called")
    try:
        result = fn(*args, **kwargs)
    except EntityNotFoundError as e:
        log.warning(f"Tool: {tool_name} failed: {e}")
        raise ToolError(str(e)) from e
    except GraphMemError as e:
        log.error(f"Tool: {tool_name} failed: {e}")
        raise ToolError(str(e)) from e
    except ValueError as e:
        log.warning(f"Tool: {tool_name} rejected input: {e}")
        raise ToolError(str(e)) from e
    log.debug(f"Tool: {tool_name} complete ({len(result)} chars)")
    return result


def build_server(manager: KnowledgeGraphManager, name: str = "graphmem-lite") -> FastMCP:
    """Create a FastMCP server whose tools operate on ``manager``.

    Args:
        manager: Store shared by every tool call
        name: Server name announced to clients

    Returns:
        Configured FastMCP instance (not yet running)
    """
    mcp = FastMCP(name, instructions=INSTRUCTIONS)

    # ═══════════════════════════════════════════════════════════════════════
    # WRITE TOOLS
    # ═══════════════════════════════════════════════════════════════════════

    @mcp.tool()
    async def create_entities(entities: list[EntityInput]) -> str:
        """Create multiple new entities in the knowledge graph.

        Entities whose name already exists are skipped; returns those created.
        """
        return _run("create_entities", tools.create_entities, manager, entities)

    @mcp.tool()
    async def create_relations(relations: list[RelationInput]) -> str:
        """Create multiple new relations between entities in the knowledge graph."""
        return _run("create_relations", tools.create_relations, manager, relations)

    @mcp.tool()
    async def add_observations(observations: list[ObservationInput]) -> str:
        """Add new observations to existing entities in the knowledge graph."""
        return _run("add_observations", tools.add_observations, manager, observations)

    @mcp.tool()
    async def delete_entities(entityNames: list[str]) -> str:
        """Delete multiple entities and their associated relations from the knowledge graph."""
        return _run("delete_entities", tools.delete_entities, manager, entityNames)

    @mcp.tool()
    async def delete_observations(deletions: list[ObservationDeletion]) -> str:
        """Delete specific observations from entities in the knowledge graph."""
        return _run("delete_observations", tools.delete_observations, manager, deletions)

    @mcp.tool()
    async def delete_relations(relations: list[RelationKey]) -> str:
        """Delete multiple relations from the knowledge graph."""
        return _run("delete_relations", tools.delete_relations, manager, relations)

    @mcp.tool()
    async def create_context(
        entities: list[str],
        summary: str,
        category: str,
        priority: Annotated[float, Field(ge=0, le=1, description="Initial priority (0-1)")],
        source: str,
        validUntil: int | str | None = None,
    ) -> str:
        """Create a new memory context.

        Args:
            entities: Entity names involved in this context
            summary: Summary of the context
            category: Context category (core, recent, background)
            priority: Initial priority (0-1)
            source: Source of the context
            validUntil: Optional expiry: epoch ms, "7d"/"12h", or an ISO date
        """
        return _run(
            "create_context", tools.create_context, manager,
            entities, summary, category, priority, source, validUntil,
        )

    @mcp.tool()
    async def optimize_memory() -> str:
        """Optimize memory storage by cleaning up old contexts and updating priorities."""
        return _run("optimize_memory", tools.optimize_memory, manager)

    # ═══════════════════════════════════════════════════════════════════════
    # READ TOOLS
    # ═══════════════════════════════════════════════════════════════════════

    @mcp.tool()
    async def read_graph() -> str:
        """Read the entire knowledge graph."""
        return _run("read_graph", tools.read_graph, manager)

    @mcp.tool()
    async def search_nodes(query: str) -> str:
        """Search for nodes by name, type, observation, tag or metadata text.

        Matched entities have their access count updated.
        """
        return _run("search_nodes", tools.search_nodes, manager, query)

    @mcp.tool()
    async def open_nodes(names: list[str]) -> str:
        """Open specific nodes in the knowledge graph by their names."""
        return _run("open_nodes", tools.open_nodes, manager, names)

    @mcp.tool()
    async def analyze_relationships(entityName: str) -> str:
        """Analyze relationships and patterns for a specific entity."""
        return _run("analyze_relationships", tools.analyze_relationships, manager, entityName)

    @mcp.tool()
    async def find_similar_entities(entityName: str) -> str:
        """Find entities similar to a given entity based on observations, tags, and relations."""
        return _run("find_similar_entities", tools.find_similar_entities, manager, entityName)

    @mcp.tool()
    async def get_entity_timeline(entityName: str) -> str:
        """Get a timeline of events related to an entity."""
        return _run("get_entity_timeline", tools.get_entity_timeline, manager, entityName)

    @mcp.tool()
    async def get_entity_quality(entityName: str) -> str:
        """Get completeness, consistency, recency, relevance and reliability scores for an entity."""
        return _run("get_entity_quality", tools.get_entity_quality, manager, entityName)

    @mcp.tool()
    async def get_memory_stats() -> str:
        """Get statistics about the current memory state."""
        return _run("get_memory_stats", tools.get_memory_stats, manager)

    @mcp.tool()
    async def summarize_memory() -> str:
        """Get a compact summary, keywords and size estimate of the memory."""
        return _run("summarize_memory", tools.summarize_memory, manager)

    log.debug(f"MCP server '{name}' built")
    return mcp


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════


def main():
    """Run the MCP server over stdio."""
    log.info("GraphMem Lite MCP server starting...")
    config = Config()
    manager = KnowledgeGraphManager(config)
    mcp = build_server(manager)
    try:
        log.info("Starting MCP server run loop")
        mcp.run()
    finally:
        manager.close()
        log.info("MCP server stopped")


if __name__ == "__main__":
    main()
