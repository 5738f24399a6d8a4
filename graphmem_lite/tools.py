"""Tool handlers for GraphMem Lite.

Each handler takes the manager plus already-validated input models, calls
one store operation and renders the result as JSON text. The MCP server
(server.py) and tests call these directly.

Input models accept the camelCase keys of the wire format (``entityType``,
``relationType``, ``from``/``to``) and reject malformed requests before the
store sees them.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from graphmem_lite.db.manager import KnowledgeGraphManager
from graphmem_lite.log_config import get_logger
from graphmem_lite.serialization import format_output
from graphmem_lite.time_utils import parse_expiry

log = get_logger("tools")


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class EntityInput(_WireModel):
    """An entity to create."""

    name: str = Field(..., description="The name of the entity")
    entity_type: str = Field(..., alias="entityType", description="The type of the entity")
    observations: list[str] = Field(
        default_factory=list,
        description="Observation contents associated with the entity",
    )
    tags: list[str] | None = Field(default=None, description="Optional tags for categorizing the entity")
    metadata: dict[str, Any] | None = Field(default=None, description="Optional metadata for the entity")
    context_category: str | None = Field(
        default=None, alias="contextCategory", description="core, recent or background"
    )
    confidence: float | None = Field(default=None, ge=0, le=1)
    source: str | None = Field(default=None, description="Where this knowledge came from")
    validation_status: str | None = Field(
        default=None,
        alias="validationStatus",
        pattern="^(verified|inferred|uncertain)$",
    )
    expires_at: int | None = Field(default=None, alias="expiresAt")


class RelationInput(_WireModel):
    """A relation to create."""

    from_entity: str = Field(..., alias="from", description="Entity where the relation starts")
    to_entity: str = Field(..., alias="to", description="Entity where the relation ends")
    relation_type: str = Field(..., alias="relationType", description="The type of the relation")
    metadata: dict[str, Any] | None = Field(default=None, description="Optional metadata for the relation")


class RelationKey(_WireModel):
    """Identity of a relation to delete."""

    from_entity: str = Field(..., alias="from")
    to_entity: str = Field(..., alias="to")
    relation_type: str = Field(..., alias="relationType")


class ObservationInput(_WireModel):
    """Observations to add to one entity."""

    entity_name: str = Field(..., alias="entityName", description="Entity to add the observations to")
    contents: list[str] = Field(..., description="Observation contents to add")


class ObservationDeletion(_WireModel):
    """Observations to remove from one entity."""

    entity_name: str = Field(..., alias="entityName", description="Entity containing the observations")
    observations: list[str] = Field(..., description="Observations to delete")


# ═══════════════════════════════════════════════════════════════════════════════
# HANDLERS
# ═══════════════════════════════════════════════════════════════════════════════


def create_entities(manager: KnowledgeGraphManager, entities: list[EntityInput]) -> str:
    created = manager.create_entities([e.to_wire() for e in entities])
    return format_output(created)


def create_relations(manager: KnowledgeGraphManager, relations: list[RelationInput]) -> str:
    created = manager.create_relations([r.to_wire() for r in relations])
    return format_output(created)


def add_observations(manager: KnowledgeGraphManager, observations: list[ObservationInput]) -> str:
    return format_output(manager.add_observations([o.to_wire() for o in observations]))


def delete_entities(manager: KnowledgeGraphManager, entity_names: list[str]) -> str:
    manager.delete_entities(entity_names)
    return "Entities deleted successfully"


def delete_observations(manager: KnowledgeGraphManager, deletions: list[ObservationDeletion]) -> str:
    manager.delete_observations([d.to_wire() for d in deletions])
    return "Observations deleted successfully"


def delete_relations(manager: KnowledgeGraphManager, relations: list[RelationKey]) -> str:
    manager.delete_relations([r.to_wire() for r in relations])
    return "Relations deleted successfully"


def read_graph(manager: KnowledgeGraphManager) -> str:
    return format_output(manager.read_graph())


def search_nodes(manager: KnowledgeGraphManager, query: str, record_access: bool = True) -> str:
    return format_output(manager.search_nodes(query, record_access=record_access))


def open_nodes(manager: KnowledgeGraphManager, names: list[str], record_access: bool = True) -> str:
    result = manager.open_nodes(names, record_access=record_access)
    return format_output({
        "entities": result.entities,
        "relations": result.relations,
    })


def analyze_relationships(manager: KnowledgeGraphManager, entity_name: str) -> str:
    return format_output(manager.analyze_relationships(entity_name))


def find_similar_entities(manager: KnowledgeGraphManager, entity_name: str) -> str:
    return format_output(manager.find_similar_entities(entity_name))


def get_entity_timeline(manager: KnowledgeGraphManager, entity_name: str) -> str:
    return format_output(manager.get_entity_timeline(entity_name))


def get_entity_quality(manager: KnowledgeGraphManager, entity_name: str) -> str:
    return format_output(manager.entity_quality(entity_name))


def optimize_memory(manager: KnowledgeGraphManager) -> str:
    summary = manager.optimize_memory()
    log.debug(f"optimize_memory: {summary}")
    return "Memory optimization completed successfully"


def get_memory_stats(manager: KnowledgeGraphManager) -> str:
    return format_output(manager.get_memory_stats())


def summarize_memory(manager: KnowledgeGraphManager) -> str:
    return format_output(manager.summarize_memory())


def create_context(
    manager: KnowledgeGraphManager,
    entities: list[str],
    summary: str,
    category: str,
    priority: float,
    source: str,
    valid_until: int | str | None = None,
) -> str:
    """Create a context; ``valid_until`` may be ms, "7d"/"12h" or an ISO date.

    Raises:
        ValueError: If ``valid_until`` cannot be parsed
    """
    expiry = parse_expiry(valid_until, manager.clock())
    context = manager.create_context(
        entities=entities,
        summary=summary,
        category=category,
        priority=priority,
        source=source,
        valid_until=expiry,
    )
    return format_output(context)
