"""Data model for GraphMem Lite.

Dataclasses hold snake_case attributes; ``to_dict``/``from_dict`` translate
to the camelCase keys used in the memory log and in tool responses.
Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

GRAPH_VERSION = "1.0.0"


class ValidationStatus(str, Enum):
    """How much an entity's content has been checked."""

    VERIFIED = "verified"
    INFERRED = "inferred"
    UNCERTAIN = "uncertain"


class PatternCategory(str, Enum):
    """Pattern strength bucket derived from confidence."""

    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_dict(obj: Any, renames: dict[str, str] | None = None) -> dict[str, Any]:
    """Serialize a dataclass to camelCase keys, dropping unset optionals."""
    renames = renames or {}
    data: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        data[renames.get(f.name, _camel(f.name))] = copy.deepcopy(value)
    return data


def _from_dict(cls, data: dict[str, Any], renames: dict[str, str] | None = None) -> dict[str, Any]:
    """Collect constructor kwargs for ``cls`` from a camelCase dict.

    Unknown keys (including the ``type`` discriminator) are ignored.
    """
    renames = renames or {}
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = renames.get(f.name, _camel(f.name))
        if key in data and data[key] is not None:
            kwargs[f.name] = copy.deepcopy(data[key])
    return kwargs


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


@dataclass
class Entity:
    """A named, typed node with free-text observations."""

    name: str
    entity_type: str = ""
    observations: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    last_accessed: int | None = None
    access_count: int = 0
    created_at: int | None = None
    updated_at: int | None = None
    priority: float | None = None
    context_category: str | None = None
    confidence: float | None = None
    source: str | None = None
    expires_at: int | None = None
    validation_status: ValidationStatus | None = None

    def __post_init__(self):
        self.observations = _dedupe(self.observations)
        self.tags = _dedupe(self.tags)
        if isinstance(self.validation_status, str) and not isinstance(
            self.validation_status, ValidationStatus
        ):
            try:
                self.validation_status = ValidationStatus(self.validation_status)
            except ValueError:
                self.validation_status = ValidationStatus.UNCERTAIN

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entity:
        return cls(**_from_dict(cls, data))


@dataclass
class Relation:
    """A directed, typed edge between two entity names."""

    from_entity: str
    to_entity: str
    relation_type: str
    strength: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: int | None = None
    updated_at: int | None = None

    _RENAMES = {"from_entity": "from", "to_entity": "to"}

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity triple used for de-duplication and deletion."""
        return (self.from_entity, self.to_entity, self.relation_type)

    def touches(self, name: str) -> bool:
        return self.from_entity == name or self.to_entity == name

    def connects(self, a: str, b: str) -> bool:
        """True if the relation joins ``a`` and ``b`` in either direction."""
        return (self.from_entity == a and self.to_entity == b) or (
            self.from_entity == b and self.to_entity == a
        )

    def other(self, name: str) -> str:
        return self.to_entity if self.from_entity == name else self.from_entity

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self, self._RENAMES)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relation:
        return cls(**_from_dict(cls, data, cls._RENAMES))


@dataclass
class Pattern:
    """Shared features between two related entities (derived, never persisted)."""

    id: str
    entities: list[str]
    relations: list[Relation]
    frequency: int
    last_seen: int
    confidence: float
    context: str
    category: PatternCategory
    priority: float
    valid_until: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = _to_dict(self)
        data["relations"] = [r.to_dict() for r in self.relations]
        return data


@dataclass
class MemoryContext:
    """A prioritized, time-bounded annotation over a set of entities."""

    id: str
    timestamp: int
    entities: list[str] = field(default_factory=list)
    relations: list[str] = field(default_factory=list)
    summary: str = ""
    priority: float = 0.0
    category: str = ""
    source: str = ""
    valid_until: int | None = None

    def is_live(self, now: int) -> bool:
        return self.valid_until is None or self.valid_until > now

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryContext:
        return cls(**_from_dict(cls, data))


@dataclass
class QualityMetrics:
    """Per-entity quality breakdown; every component lies in [0, 1]."""

    completeness: float
    consistency: float
    recency: float
    relevance: float
    reliability: float

    @property
    def score(self) -> float:
        return 0.2 * (
            self.completeness
            + self.consistency
            + self.recency
            + self.relevance
            + self.reliability
        )

    def to_dict(self) -> dict[str, Any]:
        data = _to_dict(self)
        data["score"] = self.score
        return data


@dataclass
class MemoryStats:
    """Graph-wide aggregate statistics."""

    total_entities: int = 0
    total_relations: int = 0
    total_patterns: int = 0
    total_contexts: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    avg_confidence: float = 0.0
    recent_access: int = 0
    storage_usage: int = 0
    compression_ratio: float = 1.0
    semantic_clusters: int = 0
    temporal_density: float = 0.0
    stale_entities: int = 0
    quality_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)


@dataclass
class MemoryCompression:
    """Size estimate and compact description of a graph."""

    original_size: int
    compressed_size: float
    summary: str
    keywords: list[str]
    semantic_hash: str

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)


@dataclass
class KnowledgeGraph:
    """Aggregate root: everything the store knows."""

    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    patterns: list[Pattern] = field(default_factory=list)
    contexts: list[MemoryContext] = field(default_factory=list)
    stats: MemoryStats = field(default_factory=MemoryStats)
    last_optimized: int | None = None
    version: str = GRAPH_VERSION

    def get_entity(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def entity_names(self) -> set[str]:
        return {e.name for e in self.entities}

    def to_dict(self) -> dict[str, Any]:
        data = {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
            "patterns": [p.to_dict() for p in self.patterns],
            "contexts": [c.to_dict() for c in self.contexts],
            "stats": self.stats.to_dict(),
            "version": self.version,
        }
        if self.last_optimized is not None:
            data["lastOptimized"] = self.last_optimized
        return data
