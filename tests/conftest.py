"""Shared pytest fixtures for GraphMem-Lite tests."""

from __future__ import annotations

import os
import random
import tempfile

import pytest

# Keep log files out of the real home directory; must run before the
# package (and its loguru sinks) is imported.
os.environ.setdefault("GRAPHMEM_LITE_LOG_DIR", tempfile.mkdtemp(prefix="graphmem-logs-"))

from graphmem_lite.config import Config  # noqa: E402
from graphmem_lite.db.clustering import SemanticClusterer  # noqa: E402
from graphmem_lite.db.manager import KnowledgeGraphManager  # noqa: E402
from graphmem_lite.time_utils import MS_PER_DAY, MS_PER_HOUR  # noqa: E402

T0 = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, hours: float = 0, days: float = 0) -> int:
        self.now += int(ms + hours * MS_PER_HOUR + days * MS_PER_DAY)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path, monkeypatch) -> Config:
    """Config pointing at a temporary data directory."""
    for key in list(os.environ):
        if key.startswith("GRAPHMEM_LITE_") and key != "GRAPHMEM_LITE_LOG_DIR":
            monkeypatch.delenv(key, raising=False)
    return Config(data_dir=tmp_path, memory_file=tmp_path / "memory.jsonl")


@pytest.fixture
def manager(config, clock) -> KnowledgeGraphManager:
    """Manager on a temp file with a controllable clock and seeded clustering."""
    clusterer = SemanticClusterer(
        max_clusters=config.max_clusters,
        width=config.vector_width,
        rng=random.Random(7),
    )
    mgr = KnowledgeGraphManager(config, clock=clock, clusterer=clusterer)
    yield mgr
    mgr.close()


@pytest.fixture
def make_entity():
    """Factory for wire-format entity dicts."""

    def _make(name: str, observations=None, entity_type: str = "thing", **extra) -> dict:
        data = {"name": name, "entityType": entity_type, "observations": list(observations or [])}
        data.update(extra)
        return data

    return _make


@pytest.fixture
def make_relation():
    """Factory for wire-format relation dicts."""

    def _make(source: str, target: str, relation_type: str = "rel") -> dict:
        return {"from": source, "to": target, "relationType": relation_type}

    return _make
