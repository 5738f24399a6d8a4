"""Entity Repository for GraphMem Lite.

Create, mutate and delete Entity nodes of an in-memory KnowledgeGraph.

This module handles:
- Entity creation with duplicate-name suppression
- Observation append/delete
- Cascading entity deletion (relations and context references)
- Access metadata (lastAccessed, accessCount, updatedAt)

Functions mutate the graph passed in; persisting is the manager's job.
"""

from typing import Any

from graphmem_lite.errors import EntityNotFoundError
from graphmem_lite.log_config import get_logger
from graphmem_lite.models import Entity, KnowledgeGraph

log = get_logger("db.entity_repository")


def touch_entity(entity: Entity, now: int) -> Entity:
    """Record an access: bump the counter and both access timestamps."""
    entity.last_accessed = now
    entity.access_count = (entity.access_count or 0) + 1
    entity.updated_at = now
    return entity


def require_entity(graph: KnowledgeGraph, name: str) -> Entity:
    """Return the named entity or raise EntityNotFoundError."""
    entity = graph.get_entity(name)
    if entity is None:
        raise EntityNotFoundError(name)
    return entity


class EntityRepository:
    """Operations on the entity set of a knowledge graph."""

    def create_entities(
        self,
        graph: KnowledgeGraph,
        entities: list[Entity],
        now: int,
    ) -> list[Entity]:
        """Add entities whose names are not yet in the graph.

        Existing names (and repeats within ``entities``) are silently skipped.

        Args:
            graph: Graph to mutate
            entities: Candidate entities
            now: Creation timestamp (ms)

        Returns:
            The entities actually added
        """
        known = graph.entity_names()
        created: list[Entity] = []
        for candidate in entities:
            if candidate.name in known:
                log.trace(f"Entity already exists, skipping: {candidate.name}")
                continue
            candidate.created_at = now
            candidate.updated_at = now
            candidate.last_accessed = now
            candidate.access_count = 0
            candidate.tags = candidate.tags or []
            candidate.metadata = candidate.metadata or {}
            known.add(candidate.name)
            created.append(candidate)

        graph.entities.extend(created)
        log.debug(f"Created {len(created)}/{len(entities)} entities")
        return created

    def add_observations(
        self,
        graph: KnowledgeGraph,
        additions: list[dict[str, Any]],
        now: int,
    ) -> list[dict[str, Any]]:
        """Append new observation strings to existing entities.

        Every target is checked before anything is changed, so a missing
        entity aborts the whole batch.

        Args:
            graph: Graph to mutate
            additions: ``[{"entityName": str, "contents": [str, ...]}, ...]``
            now: Access timestamp (ms)

        Returns:
            ``[{"entityName": str, "addedObservations": [str, ...]}, ...]``

        Raises:
            EntityNotFoundError: If any target entity does not exist
        """
        targets = [require_entity(graph, item["entityName"]) for item in additions]

        results = []
        for entity, item in zip(targets, additions):
            added = []
            for content in item.get("contents", []):
                if content not in entity.observations:
                    entity.observations.append(content)
                    added.append(content)
            touch_entity(entity, now)
            results.append({"entityName": entity.name, "addedObservations": added})

        log.debug(f"Added observations to {len(results)} entities")
        return results

    def delete_observations(
        self,
        graph: KnowledgeGraph,
        deletions: list[dict[str, Any]],
    ) -> None:
        """Remove observation strings; unknown entities are ignored.

        Args:
            graph: Graph to mutate
            deletions: ``[{"entityName": str, "observations": [str, ...]}, ...]``
        """
        for item in deletions:
            entity = graph.get_entity(item["entityName"])
            if entity is None:
                log.trace(f"delete_observations: no entity {item['entityName']}")
                continue
            doomed = set(item.get("observations", []))
            entity.observations = [o for o in entity.observations if o not in doomed]

    def delete_entities(self, graph: KnowledgeGraph, names: list[str]) -> int:
        """Remove entities and every relation naming them on either side.

        Context entity lists drop the deleted names as well.

        Returns:
            Number of entities removed
        """
        doomed = set(names)
        before = len(graph.entities)
        graph.entities = [e for e in graph.entities if e.name not in doomed]
        graph.relations = [
            r for r in graph.relations
            if r.from_entity not in doomed and r.to_entity not in doomed
        ]
        for ctx in graph.contexts:
            ctx.entities = [name for name in ctx.entities if name not in doomed]

        removed = before - len(graph.entities)
        log.debug(f"Deleted {removed} entities (requested {len(doomed)})")
        return removed

    def record_access(self, entities: list[Entity], now: int) -> None:
        """Touch every entity in ``entities``."""
        for entity in entities:
            touch_entity(entity, now)
