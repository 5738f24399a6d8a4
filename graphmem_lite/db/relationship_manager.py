"""Relationship Manager for GraphMem Lite.

Manages directed, typed relations between entities:
- De-duplicated creation keyed by (from, to, relationType)
- Exact-triple deletion
- Derived strength score, recomputed for every relation on insert

Strength combines three factors of a relation and its endpoints:
    0.4 * mean endpoint access count
  + 0.3 * recency term (1 / days since last touch, floored at min_recency_days)
  + 0.3 * number of observations both endpoints share
"""

from graphmem_lite.log_config import get_logger
from graphmem_lite.models import KnowledgeGraph, Relation
from graphmem_lite.time_utils import days_between

log = get_logger("db.relationships")

ACCESS_WEIGHT = 0.4
RECENCY_WEIGHT = 0.3
SHARED_OBSERVATION_WEIGHT = 0.3


def shared_observations(graph: KnowledgeGraph, a: str, b: str) -> list[str]:
    """Observations (by value) present on both named entities."""
    first = graph.get_entity(a)
    second = graph.get_entity(b)
    if first is None or second is None:
        return []
    other = set(second.observations)
    return [obs for obs in first.observations if obs in other]


class RelationshipManager:
    """Relation operations on an in-memory knowledge graph."""

    def __init__(self, min_recency_days: float = 1.0):
        """Initialize RelationshipManager.

        Args:
            min_recency_days: Lower bound on the recency factor, so a relation
                touched just now scores 1 / min_recency_days instead of
                dividing by zero (default: 1.0)
        """
        if min_recency_days <= 0:
            raise ValueError("min_recency_days must be positive")
        self.min_recency_days = min_recency_days

    def calculate_strength(self, relation: Relation, graph: KnowledgeGraph, now: int) -> float:
        """Compute the derived strength of one relation.

        Returns 0.0 when either endpoint is missing from the graph.
        """
        source = graph.get_entity(relation.from_entity)
        target = graph.get_entity(relation.to_entity)
        if source is None or target is None:
            return 0.0

        access_factor = ((source.access_count or 0) + (target.access_count or 0)) / 2

        recency_days = min(
            days_between(relation.created_at or 0, now),
            days_between(relation.updated_at or 0, now),
        )
        recency_term = 1 / max(recency_days, self.min_recency_days)

        shared = len(shared_observations(graph, relation.from_entity, relation.to_entity))

        return (
            ACCESS_WEIGHT * access_factor
            + RECENCY_WEIGHT * recency_term
            + SHARED_OBSERVATION_WEIGHT * shared
        )

    def refresh_strengths(self, graph: KnowledgeGraph, now: int) -> None:
        """Recompute strength for every relation in the graph."""
        for relation in graph.relations:
            relation.strength = self.calculate_strength(relation, graph, now)

    def create_relations(
        self,
        graph: KnowledgeGraph,
        relations: list[Relation],
        now: int,
    ) -> list[Relation]:
        """Add relations whose (from, to, type) triple is new.

        Endpoints are not required to exist; such relations get strength 0.

        Args:
            graph: Graph to mutate
            relations: Candidate relations
            now: Creation timestamp (ms)

        Returns:
            The relations actually added, with recomputed strengths
        """
        known = {r.key for r in graph.relations}
        created: list[Relation] = []
        for candidate in relations:
            if candidate.key in known:
                log.trace(f"Relation already exists, skipping: {candidate.key}")
                continue
            candidate.created_at = now
            candidate.updated_at = now
            candidate.strength = 1.0
            candidate.metadata = candidate.metadata or {}
            known.add(candidate.key)
            created.append(candidate)

        graph.relations.extend(created)
        self.refresh_strengths(graph, now)
        log.debug(f"Created {len(created)}/{len(relations)} relations")
        return created

    def delete_relations(self, graph: KnowledgeGraph, keys: list[tuple[str, str, str]]) -> int:
        """Remove relations matching the given (from, to, type) triples exactly.

        Returns:
            Number of relations removed
        """
        doomed = set(keys)
        before = len(graph.relations)
        graph.relations = [r for r in graph.relations if r.key not in doomed]
        removed = before - len(graph.relations)
        log.debug(f"Deleted {removed} relations")
        return removed

    def relations_between(self, graph: KnowledgeGraph, a: str, b: str) -> list[Relation]:
        """Relations joining ``a`` and ``b`` in either direction."""
        return [r for r in graph.relations if r.connects(a, b)]
