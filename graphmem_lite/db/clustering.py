"""Semantic clustering for GraphMem Lite.

Entities are projected into fixed-width term-frequency sketches: every
lowercase word of the entity's observations is hashed into one of
``width`` buckets. Up to ``max_clusters`` randomly chosen entities seed the
centroids, and each entity joins its nearest centroid (Euclidean) in a
single assignment pass. There is no iterative refinement; the result only
feeds the ``semanticClusters`` statistic.
"""

import math
import random
import re
from dataclasses import dataclass, field

import numpy as np

from graphmem_lite.log_config import get_logger
from graphmem_lite.models import Entity

log = get_logger("db.clustering")

WORD_SPLIT = re.compile(r"\W+", re.ASCII)


def string_hash(text: str) -> int:
    """Non-negative 32-bit rolling hash (h * 31 + ch) of a string."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def entity_vector(entity: Entity, width: int = 100) -> np.ndarray:
    """Bag-of-words bucket counts for an entity's observations."""
    vector = np.zeros(width, dtype=np.int64)
    text = " ".join(entity.observations).lower()
    for word in WORD_SPLIT.split(text):
        if word:
            vector[string_hash(word) % width] += 1
    return vector


@dataclass
class Cluster:
    """A centroid vector and the entities assigned to it."""

    centroid: np.ndarray
    members: list[str] = field(default_factory=list)


class SemanticClusterer:
    """Single-pass nearest-centroid grouping of entities."""

    def __init__(self, max_clusters: int = 5, width: int = 100, rng: random.Random | None = None):
        """Initialize SemanticClusterer.

        Args:
            max_clusters: Upper bound on clusters (default: 5)
            width: Buckets per entity vector (default: 100)
            rng: Random source for centroid seeding (default: module random)
        """
        self.max_clusters = max_clusters
        self.width = width
        self.rng = rng or random.Random()

    def cluster_count(self, n_entities: int) -> int:
        """k = min(max_clusters, ceil(n / 10))."""
        return min(self.max_clusters, math.ceil(n_entities / 10))

    def cluster(self, entities: list[Entity]) -> list[Cluster]:
        """Group entities around randomly seeded centroids.

        Args:
            entities: Entities to cluster

        Returns:
            ``k`` clusters (a cluster may be empty when seeds coincide)
        """
        k = self.cluster_count(len(entities))
        if k == 0:
            return []

        vectors = np.stack([entity_vector(e, self.width) for e in entities])
        seeds = [self.rng.randrange(len(entities)) for _ in range(k)]
        clusters = [Cluster(centroid=vectors[i].copy()) for i in seeds]
        centroids = np.stack([c.centroid for c in clusters]).astype(float)

        # distances[i, j] = |entity_i - centroid_j|; argmin keeps the first on ties
        distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
        nearest = distances.argmin(axis=1)
        for entity, index in zip(entities, nearest):
            clusters[int(index)].members.append(entity.name)

        log.trace(f"Clustered {len(entities)} entities into {k} clusters")
        return clusters
