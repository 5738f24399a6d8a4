"""Tests for semantic clustering."""

import random

import numpy as np
import pytest

from graphmem_lite.db.clustering import SemanticClusterer, entity_vector, string_hash
from graphmem_lite.models import Entity


class TestStringHash:
    """Test the rolling hash."""

    def test_known_values(self):
        assert string_hash("") == 0
        assert string_hash("a") == 97
        assert string_hash("ab") == 97 * 31 + 98

    def test_non_negative(self):
        """Values that overflow into the sign bit come back positive."""
        assert all(string_hash(word) >= 0 for word in ["overflowing", "x" * 50, "ünïcödé"])


class TestEntityVector:
    """Test bag-of-words vectors."""

    def test_counts_words(self):
        vector = entity_vector(Entity(name="A", observations=["Hello world", "hello"]), width=100)
        assert vector.sum() == 3
        assert vector[string_hash("hello") % 100] >= 2

    def test_empty(self):
        assert not entity_vector(Entity(name="A"), width=10).any()


class TestSemanticClusterer:
    """Test single-pass clustering."""

    @pytest.mark.parametrize("n,expected", [(0, 0), (1, 1), (10, 1), (11, 2), (49, 5), (500, 5)])
    def test_cluster_count(self, n, expected):
        assert SemanticClusterer(max_clusters=5).cluster_count(n) == expected

    def test_no_entities(self):
        assert SemanticClusterer().cluster([]) == []

    def test_every_entity_assigned_once(self):
        entities = [Entity(name=f"e{i}", observations=[f"word{i % 3}"]) for i in range(25)]
        clusters = SemanticClusterer(rng=random.Random(1)).cluster(entities)
        assert len(clusters) == 3
        members = [name for cluster in clusters for name in cluster.members]
        assert sorted(members) == sorted(e.name for e in entities)

    def test_entity_joins_identical_centroid(self):
        """An entity identical to a seed lands in that seed's cluster."""
        entities = [Entity(name="only", observations=["alpha beta"])]
        clusters = SemanticClusterer(rng=random.Random(0)).cluster(entities)
        assert clusters[0].members == ["only"]
        assert np.array_equal(clusters[0].centroid, entity_vector(entities[0]))
