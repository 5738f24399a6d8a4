"""Tests for RelationshipManager and the strength formula.

strength = 0.4 * mean endpoint accessCount
         + 0.3 / max(days since last touch, 1)
         + 0.3 * shared observations
"""

import pytest

from graphmem_lite.db.relationship_manager import RelationshipManager, shared_observations
from graphmem_lite.models import Entity, KnowledgeGraph, Relation
from graphmem_lite.time_utils import MS_PER_DAY

NOW = 100 * MS_PER_DAY


@pytest.fixture
def manager():
    return RelationshipManager()


def make_graph(a_obs=(), b_obs=(), a_access=0, b_access=0):
    return KnowledgeGraph(entities=[
        Entity(name="A", observations=list(a_obs), access_count=a_access),
        Entity(name="B", observations=list(b_obs), access_count=b_access),
    ])


class TestCalculateStrength:
    """Test the strength formula."""

    def test_fresh_relation_uses_recency_floor(self, manager):
        """A relation touched just now scores the recency term at 1, not infinity."""
        graph = make_graph()
        relation = Relation("A", "B", "r", created_at=NOW, updated_at=NOW)
        assert manager.calculate_strength(relation, graph, NOW) == pytest.approx(0.3)

    def test_shared_observations_add(self, manager):
        graph = make_graph(a_obs=["x", "y"], b_obs=["x", "y", "z"])
        relation = Relation("A", "B", "r", created_at=NOW, updated_at=NOW)
        assert manager.calculate_strength(relation, graph, NOW) == pytest.approx(0.3 + 0.6)

    def test_access_factor(self, manager):
        graph = make_graph(a_access=2, b_access=4)
        relation = Relation("A", "B", "r", created_at=NOW, updated_at=NOW)
        assert manager.calculate_strength(relation, graph, NOW) == pytest.approx(0.4 * 3 + 0.3)

    def test_recency_uses_most_recent_touch(self, manager):
        """The smaller of days-since-created and days-since-updated counts."""
        graph = make_graph()
        relation = Relation("A", "B", "r", created_at=NOW - 4 * MS_PER_DAY, updated_at=NOW - 2 * MS_PER_DAY)
        assert manager.calculate_strength(relation, graph, NOW) == pytest.approx(0.3 / 2)

    def test_missing_endpoint_is_zero(self, manager):
        graph = make_graph()
        relation = Relation("A", "Ghost", "r", created_at=NOW, updated_at=NOW)
        assert manager.calculate_strength(relation, graph, NOW) == 0.0

    def test_non_positive_floor_rejected(self):
        with pytest.raises(ValueError):
            RelationshipManager(min_recency_days=0)


class TestCreateRelations:
    """Test relation creation."""

    def test_dedup_existing_and_batch(self, manager):
        """Triples already present, or repeated in the batch, are skipped."""
        graph = make_graph()
        graph.relations.append(Relation("A", "B", "r"))
        created = manager.create_relations(
            graph,
            [Relation("A", "B", "r"), Relation("B", "A", "r"), Relation("B", "A", "r")],
            NOW,
        )
        assert [r.key for r in created] == [("B", "A", "r")]
        assert len(graph.relations) == 2

    def test_all_strengths_recomputed(self, manager):
        """Creating one relation refreshes every relation's strength."""
        graph = make_graph(a_obs=["x"], b_obs=["x"])
        graph.relations.append(Relation("A", "B", "old", strength=9.0, created_at=NOW, updated_at=NOW))
        manager.create_relations(graph, [Relation("B", "A", "new")], NOW)
        assert [r.strength for r in graph.relations] == [pytest.approx(0.6), pytest.approx(0.6)]
        assert all(r.created_at == NOW for r in graph.relations)

    def test_dangling_endpoint_allowed(self, manager):
        """Endpoints are not validated; such relations score 0."""
        graph = make_graph()
        created = manager.create_relations(graph, [Relation("A", "Ghost", "r")], NOW)
        assert created[0].strength == 0.0


class TestDeleteRelations:
    """Test exact-triple deletion."""

    def test_exact_match_only(self, manager):
        graph = make_graph()
        graph.relations = [Relation("A", "B", "r"), Relation("A", "B", "s"), Relation("B", "A", "r")]
        removed = manager.delete_relations(graph, [("A", "B", "r"), ("A", "B", "missing")])
        assert removed == 1
        assert [r.key for r in graph.relations] == [("A", "B", "s"), ("B", "A", "r")]

    def test_relations_between(self, manager):
        graph = make_graph()
        graph.relations = [Relation("A", "B", "r"), Relation("B", "A", "s")]
        assert len(manager.relations_between(graph, "A", "B")) == 2


def test_shared_observations():
    graph = make_graph(a_obs=["x", "y"], b_obs=["y", "x"])
    assert shared_observations(graph, "A", "B") == ["x", "y"]
    assert shared_observations(graph, "A", "Ghost") == []
