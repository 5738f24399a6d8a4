"""Knowledge graph manager for GraphMem Lite.

Coordinates the log store and the graph components. Every public
operation follows the same cycle:

1. load the graph (cache hit or file read) and rebuild the derived
   patterns and statistics
2. mutate the in-memory copy
3. recompute what the mutation invalidated
4. write the whole graph back, which invalidates the cache

The cycle runs under a re-entrant write lock, so two operations never
interleave between load and save.

CONCURRENCY WARNING:
The lock only protects callers inside one process. Several processes
writing the same memory file lose updates silently (last write wins).
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from graphmem_lite.config import Config
from graphmem_lite.db.clustering import SemanticClusterer
from graphmem_lite.db.context_manager import ContextManager
from graphmem_lite.db.entity_repository import EntityRepository, require_entity
from graphmem_lite.db.graph_log import GraphLog
from graphmem_lite.db.pattern_detector import PatternDetector
from graphmem_lite.db.quality import QualityEngine, compress_memory
from graphmem_lite.db.query_engine import QueryEngine
from graphmem_lite.db.relationship_manager import RelationshipManager
from graphmem_lite.log_config import get_logger
from graphmem_lite.models import (
    Entity,
    KnowledgeGraph,
    MemoryCompression,
    MemoryContext,
    MemoryStats,
    QualityMetrics,
    Relation,
)
from graphmem_lite.time_utils import now_ms

log = get_logger("db.manager")


def _as_entity(item: Entity | dict[str, Any]) -> Entity:
    return item if isinstance(item, Entity) else Entity.from_dict(item)


def _as_relation(item: Relation | dict[str, Any]) -> Relation:
    return item if isinstance(item, Relation) else Relation.from_dict(item)


def _as_key(item: Relation | dict[str, Any] | tuple[str, str, str]) -> tuple[str, str, str]:
    if isinstance(item, Relation):
        return item.key
    if isinstance(item, dict):
        return (item["from"], item["to"], item["relationType"])
    return tuple(item)


class KnowledgeGraphManager:
    """Entity/relation memory store backed by a single NDJSON file.

    Construct one per process and hand it to whatever dispatches requests.

    Example:
        >>> manager = KnowledgeGraphManager(Config())
        >>> manager.create_entities([{"name": "Ada", "entityType": "person",
        ...                           "observations": ["wrote the first program"]}])
        >>> manager.search_nodes("program").entities[0].name
        'Ada'
    """

    def __init__(
        self,
        config: Config | None = None,
        clock: Callable[[], int] | None = None,
        clusterer: SemanticClusterer | None = None,
    ):
        """Initialize the manager.

        Args:
            config: Optional configuration (uses defaults if not provided)
            clock: Millisecond clock (default: wall clock)
            clusterer: Optional clusterer, e.g. with a seeded random source
        """
        log.trace("KnowledgeGraphManager.__init__ starting")
        self.config = config or Config()
        self.clock = clock or now_ms
        self._write_lock = threading.RLock()

        self.graph_log = GraphLog(
            self.config.memory_file,
            ttl_ms=self.config.cache_ttl_ms,
            clock=self.clock,
        )
        self.entity_repository = EntityRepository()
        self.relationship_manager = RelationshipManager(self.config.min_recency_days)
        self.pattern_detector = PatternDetector(self.config.pattern_ttl_days)
        self.clusterer = clusterer or SemanticClusterer(
            max_clusters=self.config.max_clusters,
            width=self.config.vector_width,
        )
        self.quality_engine = QualityEngine(self.clusterer, self.config.stale_after_days)
        self.context_manager = ContextManager(self.config.max_contexts)
        self.query_engine = QueryEngine(
            self.relationship_manager,
            strength_threshold=self.config.search_strength_threshold,
            similarity_threshold=self.config.similarity_threshold,
        )
        log.info(f"KnowledgeGraphManager initialized: {self.config.memory_file}")

    @property
    def write_lock(self) -> threading.RLock:
        """Lock guarding the load→mutate→save cycle."""
        return self._write_lock

    # =========================================================================
    # Load / save cycle
    # =========================================================================

    def load_graph(self) -> KnowledgeGraph:
        """Load the graph and derive patterns and statistics."""
        graph = self.graph_log.load()
        now = self.clock()
        self.pattern_detector.refresh(graph, now)
        self.quality_engine.refresh(graph, now)
        return graph

    def save_graph(self, graph: KnowledgeGraph) -> None:
        """Persist the graph, optimizing first when the interval has elapsed."""
        with self._write_lock:
            now = self.clock()
            last = graph.last_optimized
            if last is None or now - last > self.config.optimization_interval_ms:
                log.debug("Optimization interval elapsed, optimizing before save")
                self.context_manager.optimize(graph, now)
            self.graph_log.save(graph)

    @contextmanager
    def _transaction(self) -> Iterator[KnowledgeGraph]:
        """Yield a loaded graph and save it if the block finishes cleanly."""
        with self._write_lock:
            graph = self.load_graph()
            yield graph
            self.save_graph(graph)

    def close(self) -> None:
        """Release cached state."""
        self.graph_log.invalidate()
        log.debug("KnowledgeGraphManager closed")

    # =========================================================================
    # Entities
    # =========================================================================

    def create_entities(self, entities: list[Entity | dict[str, Any]]) -> list[Entity]:
        """Create entities whose names are new; returns those created."""
        candidates = [_as_entity(e) for e in entities]
        with self._transaction() as graph:
            created = self.entity_repository.create_entities(graph, candidates, self.clock())
        log.info(f"create_entities: {len(created)} created")
        return created

    def add_observations(self, observations: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Append observations to existing entities.

        Raises:
            EntityNotFoundError: If any named entity is missing (nothing is saved)
        """
        with self._transaction() as graph:
            now = self.clock()
            results = self.entity_repository.add_observations(graph, observations, now)
            self.pattern_detector.refresh(graph, now)
        return results

    def delete_observations(self, deletions: list[dict[str, Any]]) -> None:
        with self._transaction() as graph:
            self.entity_repository.delete_observations(graph, deletions)
            self.pattern_detector.refresh(graph, self.clock())

    def delete_entities(self, names: list[str]) -> None:
        """Delete entities and every relation that names them."""
        with self._transaction() as graph:
            self.entity_repository.delete_entities(graph, names)
            self.pattern_detector.refresh(graph, self.clock())

    # =========================================================================
    # Relations
    # =========================================================================

    def create_relations(self, relations: list[Relation | dict[str, Any]]) -> list[Relation]:
        """Create new relations and recompute every relation's strength."""
        candidates = [_as_relation(r) for r in relations]
        with self._transaction() as graph:
            now = self.clock()
            created = self.relationship_manager.create_relations(graph, candidates, now)
            self.pattern_detector.refresh(graph, now)
        log.info(f"create_relations: {len(created)} created")
        return created

    def delete_relations(self, relations: list[Relation | dict[str, Any] | tuple[str, str, str]]) -> None:
        keys = [_as_key(r) for r in relations]
        with self._transaction() as graph:
            self.relationship_manager.delete_relations(graph, keys)
            self.pattern_detector.refresh(graph, self.clock())

    # =========================================================================
    # Reads
    # =========================================================================

    def read_graph(self) -> KnowledgeGraph:
        """The whole graph, including derived patterns and stats."""
        with self._write_lock:
            return self.load_graph()

    def search_nodes(self, query: str, record_access: bool = True) -> KnowledgeGraph:
        """Substring search over entities.

        Side effect: unless ``record_access`` is False, every matched entity
        has its access metadata bumped and the graph is saved.
        """
        with self._write_lock:
            graph = self.load_graph()
            now = self.clock()
            result = self.query_engine.search_nodes(graph, query)
            if record_access and result.entities:
                self.entity_repository.record_access(result.entities, now)
                self.save_graph(graph)
            result.stats = self.quality_engine.calculate_stats(result, now)
        return result

    def open_nodes(self, names: list[str], record_access: bool = True) -> KnowledgeGraph:
        """Entities by exact name plus relations among them.

        Shares the access side effect of ``search_nodes``.
        """
        with self._write_lock:
            graph = self.load_graph()
            result = self.query_engine.open_nodes(graph, names)
            if record_access and result.entities:
                self.entity_repository.record_access(result.entities, self.clock())
                self.save_graph(graph)
        return result

    def analyze_relationships(self, entity_name: str) -> dict[str, Any]:
        graph = self.read_graph()
        return self.query_engine.analyze_relationships(graph, entity_name, self.clock())

    def find_similar_entities(self, entity_name: str) -> list[Entity]:
        """Entities similar to ``entity_name``, most similar first."""
        graph = self.read_graph()
        return [entity for entity, _ in self.query_engine.find_similar_entities(graph, entity_name)]

    def get_entity_timeline(self, entity_name: str) -> list[dict[str, Any]]:
        graph = self.read_graph()
        return self.query_engine.get_entity_timeline(graph, entity_name)

    def entity_quality(self, entity_name: str) -> QualityMetrics:
        """Quality breakdown for one entity.

        Raises:
            EntityNotFoundError: If the entity does not exist
        """
        graph = self.read_graph()
        return self.quality_engine.entity_quality(require_entity(graph, entity_name), self.clock())

    # =========================================================================
    # Contexts, maintenance and statistics
    # =========================================================================

    def create_context(
        self,
        entities: list[str],
        summary: str,
        category: str,
        priority: float,
        source: str,
        valid_until: int | None = None,
        relations: list[str] | None = None,
    ) -> MemoryContext:
        """Record a new context over ``entities``."""
        with self._transaction() as graph:
            context = self.context_manager.create_context(
                graph,
                entities=entities,
                summary=summary,
                category=category,
                priority=priority,
                source=source,
                now=self.clock(),
                valid_until=valid_until,
                relations=relations,
            )
        return context

    def optimize_memory(self) -> dict[str, int]:
        """Expire and truncate contexts, then propagate their priorities."""
        with self._transaction() as graph:
            now = self.clock()
            summary = self.context_manager.optimize(graph, now)
            self.quality_engine.refresh(graph, now)
        return summary

    def get_memory_stats(self) -> MemoryStats:
        graph = self.read_graph()
        return self.quality_engine.calculate_stats(graph, self.clock())

    def summarize_memory(self) -> MemoryCompression:
        """Compact description and size estimate of the whole graph."""
        return compress_memory(self.read_graph())
