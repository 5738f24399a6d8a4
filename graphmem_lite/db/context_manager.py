"""Context management for GraphMem Lite.

Contexts are caller-created, prioritized annotations over a set of
entities. Optimization expires them, keeps the highest-priority ones up to
a bound, and propagates their mean priority onto the entities they name.
"""

import secrets
import string

from graphmem_lite.log_config import get_logger
from graphmem_lite.models import KnowledgeGraph, MemoryContext

log = get_logger("db.context_manager")

_BASE36 = string.digits + string.ascii_lowercase


def generate_context_id(now: int) -> str:
    """``ctx_<ms>_<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ctx_{now}_{suffix}"


class ContextManager:
    """Creates and compacts memory contexts."""

    def __init__(self, max_contexts: int = 1000):
        """Initialize ContextManager.

        Args:
            max_contexts: Contexts retained by optimize (default: 1000)
        """
        self.max_contexts = max_contexts

    def create_context(
        self,
        graph: KnowledgeGraph,
        entities: list[str],
        summary: str,
        category: str,
        priority: float,
        source: str,
        now: int,
        valid_until: int | None = None,
        relations: list[str] | None = None,
    ) -> MemoryContext:
        """Append a new context to the graph.

        Entity names are not checked against the graph.

        Returns:
            The created context
        """
        context = MemoryContext(
            id=generate_context_id(now),
            timestamp=now,
            entities=list(entities),
            relations=list(relations or []),
            summary=summary,
            priority=priority,
            category=category,
            source=source,
            valid_until=valid_until,
        )
        graph.contexts.append(context)
        log.debug(f"Created context {context.id} over {len(context.entities)} entities")
        return context

    def optimize(self, graph: KnowledgeGraph, now: int) -> dict[str, int]:
        """Expire, rank, truncate contexts and update entity priorities.

        Entities referenced by no surviving context keep their priority.

        Returns:
            Counts of expired and truncated contexts and re-prioritized entities
        """
        before = len(graph.contexts)
        live = [ctx for ctx in graph.contexts if ctx.is_live(now)]
        expired = before - len(live)

        # sort() is stable: equal priorities keep insertion order
        live.sort(key=lambda ctx: ctx.priority, reverse=True)
        truncated = max(0, len(live) - self.max_contexts)
        graph.contexts = live[: self.max_contexts]

        priorities: dict[str, list[float]] = {}
        for ctx in graph.contexts:
            for name in set(ctx.entities):
                priorities.setdefault(name, []).append(ctx.priority)

        updated = 0
        for entity in graph.entities:
            values = priorities.get(entity.name)
            if values:
                entity.priority = sum(values) / len(values)
                updated += 1

        graph.last_optimized = now
        log.info(
            f"Optimized memory: {expired} expired, {truncated} truncated, "
            f"{len(graph.contexts)} contexts kept, {updated} entity priorities updated"
        )
        return {"expired": expired, "truncated": truncated, "entitiesUpdated": updated}
