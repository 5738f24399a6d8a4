"""Persistent log store for GraphMem Lite.

The whole graph lives in one NDJSON file: one independently parseable
record per line, tagged with a ``type`` discriminator (entity, relation,
context). Every save rewrites the file; derived data (patterns, stats) is
never written.

A loaded graph is cached for ``ttl_ms``. Callers always receive a deep
copy, so mutating a loaded graph never touches the cached snapshot, and
the cache is dropped after every save attempt.
"""

import copy
import os
from pathlib import Path
from typing import Callable

import orjson

from graphmem_lite.errors import StorageError
from graphmem_lite.log_config import get_logger, log_timing
from graphmem_lite.models import Entity, KnowledgeGraph, MemoryContext, Relation
from graphmem_lite.time_utils import now_ms

log = get_logger("db.graph_log")

RECORD_TYPES = ("entity", "relation", "context")
SLOW_IO_MS = 1000


def serialize_graph(graph: KnowledgeGraph, stamp: int) -> bytes:
    """Render the persistent part of a graph as NDJSON bytes.

    Args:
        graph: Graph to serialize
        stamp: Timestamp written into every record's ``updatedAt``

    Returns:
        File contents (no trailing newline)
    """
    records = [
        *({"type": "entity", **e.to_dict(), "updatedAt": stamp} for e in graph.entities),
        *({"type": "relation", **r.to_dict(), "updatedAt": stamp} for r in graph.relations),
        *({"type": "context", **c.to_dict(), "updatedAt": stamp} for c in graph.contexts),
    ]
    return b"\n".join(orjson.dumps(record) for record in records)


def parse_graph(data: bytes | str) -> KnowledgeGraph:
    """Rebuild a graph from NDJSON contents.

    Blank lines and records with an unknown ``type`` are skipped.

    Raises:
        orjson.JSONDecodeError: If a non-blank line is not valid JSON
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    graph = KnowledgeGraph()
    for line in data.splitlines():
        if not line.strip():
            continue
        item = orjson.loads(line)
        kind = item.get("type") if isinstance(item, dict) else None
        if kind == "entity":
            graph.entities.append(Entity.from_dict(item))
        elif kind == "relation":
            graph.relations.append(Relation.from_dict(item))
        elif kind == "context":
            graph.contexts.append(MemoryContext.from_dict(item))
        else:
            log.trace(f"Skipping record with unknown type: {kind!r}")
    return graph


class GraphLog:
    """File-backed graph storage with a time-to-live read cache.

    Example:
        >>> graph_log = GraphLog(Path("memory.jsonl"))
        >>> graph = graph_log.load()
        >>> graph.entities.append(Entity(name="Ada", entity_type="person"))
        >>> graph_log.save(graph)
    """

    def __init__(
        self,
        path: Path,
        ttl_ms: int = 5 * 60 * 1000,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the log store.

        Args:
            path: NDJSON file holding the graph
            ttl_ms: Cache time-to-live in milliseconds (default: 5 minutes)
            clock: Millisecond clock, injectable for tests
        """
        self.path = Path(path)
        self.ttl_ms = ttl_ms
        self.clock = clock
        self._cached: KnowledgeGraph | None = None
        self._cached_at = 0
        # Not part of the file format; survives cache invalidation
        self.last_optimized: int | None = None

    @property
    def is_cached(self) -> bool:
        return self._cached is not None and self.clock() - self._cached_at < self.ttl_ms

    def invalidate(self) -> None:
        """Drop the cached snapshot."""
        if self._cached is not None:
            log.trace("Cache invalidated")
        self._cached = None
        self._cached_at = 0

    def load(self) -> KnowledgeGraph:
        """Return the current graph, from cache when fresh.

        A missing file yields an empty graph.

        Returns:
            A private copy of the graph

        Raises:
            StorageError: If the file exists but cannot be read or parsed
        """
        if self.is_cached:
            log.trace("Graph cache hit")
            return copy.deepcopy(self._cached)

        with log_timing(f"Graph load from {self.path.name}", log, level="trace", slow_ms=SLOW_IO_MS):
            try:
                data = self.path.read_bytes()
            except FileNotFoundError:
                log.debug(f"No memory log at {self.path}, starting with an empty graph")
                graph = KnowledgeGraph()
            except OSError as e:
                log.error(f"Failed to read memory log: {e}")
                raise StorageError("Failed to read memory log", self.path) from e
            else:
                try:
                    graph = parse_graph(data)
                except (orjson.JSONDecodeError, TypeError, ValueError) as e:
                    log.error(f"Corrupt memory log: {e}")
                    raise StorageError("Corrupt memory log", self.path) from e

        graph.last_optimized = self.last_optimized
        log.debug(
            f"Loaded graph: {len(graph.entities)} entities, "
            f"{len(graph.relations)} relations, {len(graph.contexts)} contexts"
        )

        self._cached = graph
        self._cached_at = self.clock()
        return copy.deepcopy(graph)

    def save(self, graph: KnowledgeGraph) -> None:
        """Replace the file with the graph's entities, relations and contexts.

        Written to a temporary sibling and moved into place, so readers and
        crashes never observe a truncated file. The cache is invalidated
        whether or not the write succeeds.

        Raises:
            StorageError: If the graph cannot be serialized or the file
                cannot be written
        """
        stamp = self.clock()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            payload = serialize_graph(graph, stamp)
        except orjson.JSONEncodeError as e:
            self.invalidate()
            log.error(f"Failed to serialize memory log: {e}")
            raise StorageError(f"Failed to serialize memory log ({e})", self.path) from e

        try:
            with log_timing(f"Graph save to {self.path.name}", log, level="trace", slow_ms=SLOW_IO_MS):
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_bytes(payload)
                os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            log.error(f"Failed to write memory log: {e}")
            raise StorageError("Failed to write memory log", self.path) from e
        finally:
            self.invalidate()

        if graph.last_optimized is not None:
            self.last_optimized = graph.last_optimized
        log.debug(f"Saved graph: {len(payload)} bytes to {self.path}")
