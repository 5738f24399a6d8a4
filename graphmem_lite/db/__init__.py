"""Graph storage and analytics for GraphMem Lite.

This package provides KnowledgeGraphManager, which keeps the whole graph
in one NDJSON file and derives patterns, quality and statistics from it.

Module Structure:
- manager.py: KnowledgeGraphManager, the load→mutate→save coordinator
- graph_log.py: NDJSON persistence with a TTL read cache
- entity_repository.py: entity create/observe/delete
- relationship_manager.py: relation create/delete and strength
- pattern_detector.py: shared-feature patterns between related entities
- clustering.py: bag-of-words entity clustering
- quality.py: entity quality, graph statistics, compression summary
- context_manager.py: context creation and optimization
- query_engine.py: search, lookup, similarity and timelines

Example:
    from graphmem_lite.config import Config
    from graphmem_lite.db import KnowledgeGraphManager

    manager = KnowledgeGraphManager(Config())
    manager.create_entities([{"name": "Ada", "entityType": "person", "observations": []}])
"""

from graphmem_lite.db.graph_log import GraphLog
from graphmem_lite.db.manager import KnowledgeGraphManager

__all__ = [
    "GraphLog",
    "KnowledgeGraphManager",
]
