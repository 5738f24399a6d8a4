"""GraphMem Lite - Embedded entity/relation memory MCP server.

A small knowledge-graph memory with:
- NDJSON file persistence and a TTL read cache
- Relation strength, co-occurrence patterns and entity quality scoring
- Prioritized, expiring contexts
- FastMCP tool server and a Typer CLI
"""

__version__ = "0.1.0"

from graphmem_lite.config import Config
from graphmem_lite.db import KnowledgeGraphManager
from graphmem_lite.errors import EntityNotFoundError, GraphMemError, StorageError
from graphmem_lite.models import Entity, KnowledgeGraph, MemoryContext, Relation

__all__ = [
    "Config",
    "KnowledgeGraphManager",
    "Entity",
    "Relation",
    "MemoryContext",
    "KnowledgeGraph",
    "GraphMemError",
    "EntityNotFoundError",
    "StorageError",
]
