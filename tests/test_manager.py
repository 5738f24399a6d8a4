"""End-to-end tests for KnowledgeGraphManager.

Tests critical store pathways against a real file in a temp directory:
- Idempotent creation and relation de-duplication
- Cascading deletes and all-or-nothing observation updates
- Search/open access bookkeeping
- Derived patterns and stats on every read
- Automatic optimization on save
- Persistence across manager instances
"""

import threading

import pytest

from graphmem_lite.db.manager import KnowledgeGraphManager
from graphmem_lite.errors import EntityNotFoundError, StorageError
from graphmem_lite.models import QualityMetrics


def entity(name, observations=None, entity_type="thing", **extra):
    data = {"name": name, "entityType": entity_type, "observations": list(observations or [])}
    data.update(extra)
    return data


def relation(source, target, relation_type="rel"):
    return {"from": source, "to": target, "relationType": relation_type}


@pytest.fixture
def related_pair(manager):
    """Two entities sharing observation "x", related A -> B."""
    manager.create_entities([entity("A", ["x"]), entity("B", ["x"])])
    manager.create_relations([relation("A", "B")])
    return manager


class TestEntities:
    """Test entity operations through the manager."""

    def test_create_is_idempotent(self, manager):
        """Creating the same entity twice yields one entity."""
        assert [e.name for e in manager.create_entities([entity("A", ["x"])])] == ["A"]
        assert manager.create_entities([entity("A", ["y"])]) == []
        graph = manager.read_graph()
        assert [e.name for e in graph.entities] == ["A"]
        assert graph.entities[0].observations == ["x"]

    def test_created_entity_fields(self, manager, clock):
        created = manager.create_entities([entity("A", tags=["t"], source="chat")])[0]
        assert created.created_at == clock.now
        assert created.access_count == 0
        assert created.tags == ["t"]
        assert created.source == "chat"

    def test_add_observations(self, manager):
        manager.create_entities([entity("A", ["x"])])
        result = manager.add_observations([{"entityName": "A", "contents": ["x", "y"]}])
        assert result == [{"entityName": "A", "addedObservations": ["y"]}]
        assert manager.read_graph().get_entity("A").observations == ["x", "y"]

    def test_add_observations_missing_entity_changes_nothing(self, manager):
        manager.create_entities([entity("A", ["x"])])
        with pytest.raises(EntityNotFoundError, match="Entity with name Ghost not found"):
            manager.add_observations([
                {"entityName": "A", "contents": ["y"]},
                {"entityName": "Ghost", "contents": ["z"]},
            ])
        assert manager.read_graph().get_entity("A").observations == ["x"]

    def test_delete_observations(self, manager):
        manager.create_entities([entity("A", ["x", "y"])])
        manager.delete_observations([{"entityName": "A", "observations": ["x"]}])
        assert manager.read_graph().get_entity("A").observations == ["y"]

    def test_delete_entities_cascades(self, manager):
        manager.create_entities([entity("A"), entity("B"), entity("C")])
        manager.create_relations([relation("A", "B"), relation("B", "C"), relation("C", "A")])
        manager.create_context(["A", "B"], "s", "core", 0.5, "chat")
        manager.delete_entities(["A"])
        graph = manager.read_graph()
        assert [e.name for e in graph.entities] == ["B", "C"]
        assert [r.key for r in graph.relations] == [("B", "C", "rel")]
        assert graph.contexts[0].entities == ["B"]


class TestRelations:
    """Test relation operations through the manager."""

    def test_create_relation_dedup(self, manager):
        manager.create_entities([entity("A"), entity("B")])
        assert len(manager.create_relations([relation("A", "B")])) == 1
        assert manager.create_relations([relation("A", "B")]) == []
        assert len(manager.read_graph().relations) == 1

    def test_strength_from_shared_observation(self, related_pair):
        """No accesses, fresh relation, one shared observation."""
        assert related_pair.read_graph().relations[0].strength == pytest.approx(0.6)

    def test_delete_relations_by_dict_or_tuple(self, manager):
        manager.create_entities([entity("A"), entity("B")])
        manager.create_relations([relation("A", "B", "r1"), relation("A", "B", "r2")])
        manager.delete_relations([{"from": "A", "to": "B", "relationType": "r1"}])
        manager.delete_relations([("A", "B", "r2")])
        assert manager.read_graph().relations == []


class TestQueries:
    """Test read operations and their side effects."""

    def test_shared_observation_scenario(self, related_pair):
        """Two entities sharing an observation are related, similar and found together."""
        analysis = related_pair.analyze_relationships("A")
        assert analysis["directRelations"][0]["strength"] > 0
        assert [e["name"] for e in analysis["connectedEntities"]] == ["B"]

        assert [e.name for e in related_pair.find_similar_entities("A")] == ["B"]

        result = related_pair.search_nodes("x")
        assert [e.name for e in result.entities] == ["A", "B"]
        assert [r.key for r in result.relations] == [("A", "B", "rel")]
        assert len(result.patterns) == 1

    def test_weak_relation_hidden_from_search(self, manager):
        manager.create_entities([entity("alpha", ["one"]), entity("gamma", ["two"])])
        manager.create_relations([relation("alpha", "gamma")])
        result = manager.search_nodes("alpha")
        assert [e.name for e in result.entities] == ["alpha"]
        assert result.relations == []

    def test_search_records_access(self, manager, clock):
        manager.create_entities([entity("A", ["x"]), entity("B", ["y"])])
        clock.advance(ms=50)
        result = manager.search_nodes("x")
        assert result.entities[0].access_count == 1
        graph = manager.read_graph()
        assert graph.get_entity("A").access_count == 1
        assert graph.get_entity("A").last_accessed == clock.now
        assert graph.get_entity("B").access_count == 0

    def test_search_without_recording(self, manager):
        manager.create_entities([entity("A", ["x"])])
        manager.search_nodes("x", record_access=False)
        assert manager.read_graph().get_entity("A").access_count == 0

    def test_search_stats_cover_result(self, manager):
        manager.create_entities([entity("A", ["x"]), entity("B", ["y"])])
        assert manager.search_nodes("x").stats.total_entities == 1

    def test_open_nodes(self, related_pair):
        result = related_pair.open_nodes(["A", "B", "Ghost"])
        assert [e.name for e in result.entities] == ["A", "B"]
        assert len(result.relations) == 1
        assert related_pair.read_graph().get_entity("B").access_count == 1

    def test_unknown_entity_queries(self, manager):
        for call in (
            manager.analyze_relationships,
            manager.find_similar_entities,
            manager.get_entity_timeline,
            manager.entity_quality,
        ):
            with pytest.raises(EntityNotFoundError):
                call("Ghost")

    def test_timeline(self, related_pair):
        events = related_pair.get_entity_timeline("A")
        assert {e["type"] for e in events} == {"created", "updated", "accessed", "relation"}

    def test_entity_quality(self, manager):
        manager.create_entities([entity("A", ["x"], validationStatus="verified")])
        metrics = manager.entity_quality("A")
        assert isinstance(metrics, QualityMetrics)
        assert metrics.reliability == 1.0
        assert metrics.recency == pytest.approx(1.0)


class TestDerivedData:
    """Test patterns and stats recomputed on every read."""

    def test_patterns_on_read(self, related_pair):
        graph = related_pair.read_graph()
        assert len(graph.patterns) == 1
        assert graph.patterns[0].entities == ["A", "B"]
        assert graph.stats.total_patterns == 1

    def test_patterns_survive_new_manager(self, related_pair, config, clock):
        """Patterns are rebuilt from the file, not from memory."""
        fresh = KnowledgeGraphManager(config, clock=clock)
        assert len(fresh.read_graph().patterns) == 1

    def test_memory_stats(self, related_pair):
        related_pair.create_context(["A"], "s", "core", 0.5, "chat")
        stats = related_pair.get_memory_stats()
        assert stats.total_entities == 2
        assert stats.total_relations == 1
        assert stats.total_patterns == 1
        assert stats.total_contexts == 1
        assert stats.semantic_clusters == 1
        assert 0.0 <= stats.quality_score <= 1.0

    def test_summarize_memory(self, related_pair):
        compression = related_pair.summarize_memory()
        assert compression.summary.startswith("Knowledge graph with 2 entities and 1 relations.")
        assert compression.keywords == ["thing"]


class TestOptimization:
    """Test context optimization and the automatic interval."""

    def test_optimize_memory_propagates_priority(self, manager):
        manager.create_entities([entity("A")])
        manager.create_context(["A"], "s", "core", 0.9, "chat")
        summary = manager.optimize_memory()
        assert summary == {"expired": 0, "truncated": 0, "entitiesUpdated": 1}
        assert manager.read_graph().get_entity("A").priority == pytest.approx(0.9)

    def test_expired_context_kept_until_interval(self, manager, clock):
        """Within the interval, saves do not optimize."""
        manager.create_entities([entity("A")])
        manager.create_context(["A"], "s", "core", 0.9, "chat", valid_until=clock.now + 1000)
        clock.advance(hours=2)
        manager.create_entities([entity("B")])
        assert len(manager.read_graph().contexts) == 1

    def test_auto_optimize_after_interval(self, manager, clock):
        """A save more than 24h after the last optimization optimizes first."""
        manager.create_entities([entity("A")])
        manager.create_context(["A"], "s", "core", 0.9, "chat", valid_until=clock.now + 1000)
        clock.advance(hours=25)
        manager.create_entities([entity("B")])
        graph = manager.read_graph()
        assert graph.contexts == []
        assert graph.last_optimized == clock.now

    def test_manual_optimize_resets_interval(self, manager, clock):
        manager.create_entities([entity("A")])
        clock.advance(hours=23)
        manager.optimize_memory()
        manager.create_context(["A"], "s", "core", 0.9, "chat", valid_until=clock.now + 1)
        clock.advance(hours=2)
        manager.create_entities([entity("B")])
        assert len(manager.read_graph().contexts) == 1


class TestPersistence:
    """Test the file boundary."""

    def test_new_manager_sees_data(self, manager, config, clock):
        manager.create_entities([entity("A", ["x"])])
        fresh = KnowledgeGraphManager(config, clock=clock)
        assert fresh.read_graph().get_entity("A").observations == ["x"]

    def test_unencodable_metadata(self, manager):
        """Metadata that cannot be written surfaces as StorageError; nothing is stored."""
        manager.create_entities([entity("A")])
        manager.read_graph()
        with pytest.raises(StorageError, match="Failed to serialize"):
            manager.create_entities([entity("B", metadata={"n": 2**70})])
        assert not manager.graph_log.is_cached
        assert [e.name for e in manager.read_graph().entities] == ["A"]

    def test_corrupt_file(self, manager, config):
        config.memory_file.write_text("not json\n")
        with pytest.raises(StorageError):
            manager.read_graph()

    def test_concurrent_writers_in_process(self, manager):
        """Writes from many threads are serialized; none is lost."""
        threads = [
            threading.Thread(target=manager.create_entities, args=([entity(f"e{i}")],))
            for i in range(10)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(manager.read_graph().entities) == 10
