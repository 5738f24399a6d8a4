"""Query engine for GraphMem Lite.

Read-side operations over an in-memory graph. None of these functions
mutate the graph; the manager applies access bookkeeping afterwards.
"""

from typing import Any

from graphmem_lite.db.entity_repository import require_entity
from graphmem_lite.db.relationship_manager import RelationshipManager
from graphmem_lite.log_config import get_logger
from graphmem_lite.models import Entity, KnowledgeGraph

log = get_logger("db.query_engine")

SIMILARITY_WEIGHTS = {"observations": 0.4, "tags": 0.3, "relations": 0.3}


def entity_matches(entity: Entity, query: str) -> bool:
    """Case-insensitive substring match on name, type, observations, tags
    and string metadata values."""
    q = query.lower()
    if q in entity.name.lower() or q in (entity.entity_type or "").lower():
        return True
    if any(q in obs.lower() for obs in entity.observations):
        return True
    if any(q in tag.lower() for tag in entity.tags):
        return True
    return any(isinstance(v, str) and q in v.lower() for v in (entity.metadata or {}).values())


class QueryEngine:
    """Search, lookup and per-entity analysis."""

    def __init__(
        self,
        relationships: RelationshipManager,
        strength_threshold: float = 0.5,
        similarity_threshold: float = 0.5,
    ):
        """Initialize QueryEngine.

        Args:
            relationships: Used to recompute strength in analysis
            strength_threshold: Relations must exceed this to appear in search
            similarity_threshold: Entities must exceed this to count as similar
        """
        self.relationships = relationships
        self.strength_threshold = strength_threshold
        self.similarity_threshold = similarity_threshold

    def search_nodes(self, graph: KnowledgeGraph, query: str) -> KnowledgeGraph:
        """Subgraph of entities matching ``query``.

        Relations must touch a match and be stronger than the threshold;
        patterns and contexts only need to reference a match.
        """
        entities = [e for e in graph.entities if entity_matches(e, query)]
        names = {e.name for e in entities}

        relations = [
            r for r in graph.relations
            if (r.from_entity in names or r.to_entity in names)
            and (r.strength or 0) > self.strength_threshold
        ]
        patterns = [p for p in graph.patterns if any(n in names for n in p.entities)]
        contexts = [c for c in graph.contexts if any(n in names for n in c.entities)]

        log.debug(f"search_nodes({query!r}): {len(entities)} entities, {len(relations)} relations")
        return KnowledgeGraph(
            entities=entities,
            relations=relations,
            patterns=patterns,
            contexts=contexts,
            last_optimized=graph.last_optimized,
            version=graph.version,
        )

    def open_nodes(self, graph: KnowledgeGraph, names: list[str]) -> KnowledgeGraph:
        """Named entities plus the relations among them."""
        wanted = set(names)
        entities = [e for e in graph.entities if e.name in wanted]
        found = {e.name for e in entities}
        relations = [
            r for r in graph.relations if r.from_entity in found and r.to_entity in found
        ]
        return KnowledgeGraph(entities=entities, relations=relations, version=graph.version)

    def analyze_relationships(self, graph: KnowledgeGraph, name: str, now: int) -> dict[str, Any]:
        """Direct relations (with fresh strength), neighbours and patterns of one entity.

        Raises:
            EntityNotFoundError: If ``name`` is not in the graph
        """
        entity = require_entity(graph, name)
        direct = [r for r in graph.relations if r.touches(name)]
        neighbours = {r.other(name) for r in direct} - {name}

        direct_out = []
        for relation in direct:
            data = relation.to_dict()
            data["strength"] = self.relationships.calculate_strength(relation, graph, now)
            direct_out.append(data)

        return {
            "entity": entity.to_dict(),
            "directRelations": direct_out,
            "connectedEntities": [e.to_dict() for e in graph.entities if e.name in neighbours],
            "patterns": [p.to_dict() for p in graph.patterns if name in p.entities],
        }

    def similarity(self, graph: KnowledgeGraph, entity: Entity, other: Entity) -> float:
        """0.4 * shared observations + 0.3 * shared tags + 0.3 * relations between them."""
        other_obs = set(other.observations)
        other_tags = set(other.tags)
        shared_obs = sum(1 for o in entity.observations if o in other_obs)
        shared_tags = sum(1 for t in entity.tags if t in other_tags)
        shared_rel = len(self.relationships.relations_between(graph, entity.name, other.name))
        return (
            SIMILARITY_WEIGHTS["observations"] * shared_obs
            + SIMILARITY_WEIGHTS["tags"] * shared_tags
            + SIMILARITY_WEIGHTS["relations"] * shared_rel
        )

    def find_similar_entities(self, graph: KnowledgeGraph, name: str) -> list[tuple[Entity, float]]:
        """Entities scoring above the similarity threshold, best first.

        Raises:
            EntityNotFoundError: If ``name`` is not in the graph
        """
        entity = require_entity(graph, name)
        scored = [
            (other, self.similarity(graph, entity, other))
            for other in graph.entities
            if other.name != name
        ]
        scored = [item for item in scored if item[1] > self.similarity_threshold]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def get_entity_timeline(self, graph: KnowledgeGraph, name: str) -> list[dict[str, Any]]:
        """Creation, update, access and relation events, newest first.

        Raises:
            EntityNotFoundError: If ``name`` is not in the graph
        """
        entity = require_entity(graph, name)
        events: list[dict[str, Any]] = [
            {"type": "created", "timestamp": entity.created_at, "details": "Entity created"},
            {"type": "updated", "timestamp": entity.updated_at, "details": "Last updated"},
            {
                "type": "accessed",
                "timestamp": entity.last_accessed,
                "details": f"Accessed {entity.access_count} times",
            },
        ]
        for relation in graph.relations:
            if relation.touches(name):
                events.append({
                    "type": "relation",
                    "timestamp": relation.created_at,
                    "details": f"Relation {relation.relation_type} with {relation.other(name)}",
                })

        events = [e for e in events if e["timestamp"]]
        events.sort(key=lambda e: e["timestamp"], reverse=True)
        return events

