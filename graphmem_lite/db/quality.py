"""Quality scoring and graph statistics for GraphMem Lite.

Per-entity quality is the equal-weight mean of five components, each
clamped to [0, 1]:
- completeness: share of {tags, metadata, contextCategory, source} populated
- consistency: 1 - keyword contradictions / observation count; keywords
  are matched case-insensitively ("Always" contradicts "never")
- recency: exp(-days since last update / 30)
- relevance: accessCount / 100
- reliability: by validation status

Graph statistics aggregate counts, confidence, access freshness, size
estimates, cluster count and event density.
"""

from itertools import combinations
from math import exp

import orjson

from graphmem_lite.db.clustering import SemanticClusterer, string_hash
from graphmem_lite.log_config import get_logger
from graphmem_lite.models import (
    Entity,
    KnowledgeGraph,
    MemoryCompression,
    MemoryStats,
    QualityMetrics,
    ValidationStatus,
)
from graphmem_lite.time_utils import MS_PER_DAY, days_between

log = get_logger("db.quality")

CONTRADICTION_PAIRS = [
    ("always", "never"),
    ("true", "false"),
    ("high", "low"),
    ("increase", "decrease"),
]

RELIABILITY = {
    ValidationStatus.VERIFIED: 1.0,
    ValidationStatus.INFERRED: 0.7,
}
DEFAULT_RELIABILITY = 0.4

RECENCY_DECAY_DAYS = 30
RELEVANCE_SATURATION = 100
DENSITY_WINDOW_DAYS = 30
# Assumed size reduction; nothing is actually compressed
COMPRESSION_FACTOR = 0.6


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def count_contradictions(observations: list[str]) -> int:
    """Count observation pairs that use opposing keywords (case-insensitive)."""
    lowered = [o.lower() for o in observations]
    contradictions = 0
    for first, second in combinations(lowered, 2):
        for a, b in CONTRADICTION_PAIRS:
            if (a in first and b in second) or (b in first and a in second):
                contradictions += 1
    return contradictions


def check_consistency(observations: list[str]) -> float:
    """Consistency score in [0, 1]; no observations means nothing contradicts."""
    if not observations:
        return 1.0
    return _clamp(1 - count_contradictions(observations) / len(observations))


def quality_metrics(entity: Entity, now: int) -> QualityMetrics:
    """Compute the five quality components for one entity."""
    optional = [entity.tags, entity.metadata, entity.context_category, entity.source]
    completeness = sum(1 for value in optional if value) / len(optional)

    updated = entity.updated_at if entity.updated_at is not None else now
    recency = _clamp(exp(-days_between(updated, now) / RECENCY_DECAY_DAYS))

    return QualityMetrics(
        completeness=completeness,
        consistency=check_consistency(entity.observations),
        recency=recency,
        relevance=_clamp((entity.access_count or 0) / RELEVANCE_SATURATION),
        reliability=RELIABILITY.get(entity.validation_status, DEFAULT_RELIABILITY),
    )


def temporal_density(graph: KnowledgeGraph, now: int, window_days: int = DENSITY_WINDOW_DAYS) -> float:
    """Entity and relation events inside the window, per day."""
    window = window_days * MS_PER_DAY
    stamps = [e.updated_at or e.created_at or 0 for e in graph.entities]
    stamps += [r.updated_at or r.created_at or 0 for r in graph.relations]
    events = sum(1 for ts in stamps if now - ts < window)
    return events / window_days


def semantic_hash(graph: KnowledgeGraph) -> str:
    """Order-independent hex hash of entity names, types and observations."""
    content = "|".join(sorted(
        f"{e.name}:{e.entity_type}:{','.join(e.observations)}" for e in graph.entities
    ))
    return format(string_hash(content), "x")


def serialized_size(graph: KnowledgeGraph) -> int:
    """Byte length of the graph rendered as JSON."""
    return len(orjson.dumps(graph.to_dict()))


def compress_memory(graph: KnowledgeGraph) -> MemoryCompression:
    """Describe the graph compactly and estimate its compressed size."""
    original_size = serialized_size(graph)

    categories = list(dict.fromkeys(
        e.context_category for e in graph.entities if e.context_category
    ))
    summary = (
        f"Knowledge graph with {len(graph.entities)} entities and "
        f"{len(graph.relations)} relations. Main categories: {', '.join(categories)}"
    )

    keywords: dict[str, None] = {}
    for entity in graph.entities:
        keywords[entity.entity_type] = None
        for tag in entity.tags:
            keywords[tag] = None

    return MemoryCompression(
        original_size=original_size,
        compressed_size=original_size * COMPRESSION_FACTOR,
        summary=summary,
        keywords=list(keywords),
        semantic_hash=semantic_hash(graph),
    )


class QualityEngine:
    """Computes entity quality and graph-wide statistics."""

    def __init__(self, clusterer: SemanticClusterer | None = None, stale_after_days: int = 30):
        """Initialize QualityEngine.

        Args:
            clusterer: Clusterer used for the semanticClusters statistic
            stale_after_days: Days without access before an entity is stale
        """
        self.clusterer = clusterer or SemanticClusterer()
        self.stale_after_days = stale_after_days

    def entity_quality(self, entity: Entity, now: int) -> QualityMetrics:
        return quality_metrics(entity, now)

    def calculate_stats(self, graph: KnowledgeGraph, now: int) -> MemoryStats:
        """Aggregate statistics for ``graph`` as of ``now``."""
        category_counts: dict[str, int] = {}
        total_confidence = 0.0
        recent_access = 0
        stale = 0
        total_quality = 0.0
        stale_window = self.stale_after_days * MS_PER_DAY

        for entity in graph.entities:
            if entity.context_category:
                category_counts[entity.context_category] = (
                    category_counts.get(entity.context_category, 0) + 1
                )
            if entity.confidence:
                total_confidence += entity.confidence
            if entity.last_accessed:
                idle = now - entity.last_accessed
                if idle < MS_PER_DAY:
                    recent_access += 1
                if idle > stale_window:
                    stale += 1
            total_quality += quality_metrics(entity, now).score

        n = len(graph.entities) or 1
        compression = compress_memory(graph)

        stats = MemoryStats(
            total_entities=len(graph.entities),
            total_relations=len(graph.relations),
            total_patterns=len(graph.patterns),
            total_contexts=len(graph.contexts),
            category_counts=category_counts,
            avg_confidence=total_confidence / n,
            recent_access=recent_access,
            storage_usage=compression.original_size,
            compression_ratio=compression.original_size / compression.compressed_size,
            semantic_clusters=len(self.clusterer.cluster(graph.entities)),
            temporal_density=temporal_density(graph, now),
            stale_entities=stale,
            quality_score=total_quality / n,
        )
        log.trace(
            f"Stats: {stats.total_entities} entities, {stats.total_relations} relations, "
            f"quality={stats.quality_score:.3f}"
        )
        return stats

    def refresh(self, graph: KnowledgeGraph, now: int) -> None:
        """Recompute ``graph.stats`` in place."""
        graph.stats = self.calculate_stats(graph, now)
