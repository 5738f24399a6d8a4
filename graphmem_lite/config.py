"""Configuration for GraphMem Lite.

Simple dataclass-based configuration with sensible defaults.
Override via environment variables with GRAPHMEM_LITE_ prefix.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from graphmem_lite.log_config import get_logger

log = get_logger("config")

# Load .env file if present
_pkg_dir = Path(__file__).parent.parent
_env_loaded = load_dotenv(_pkg_dir / ".env") or load_dotenv(_pkg_dir.parent / ".env")
log.debug(f"Loaded .env file: {_env_loaded}")


def _get_env(key: str, default: str) -> str:
    """Get environment variable with GRAPHMEM_LITE_ prefix."""
    return os.getenv(f"GRAPHMEM_LITE_{key}", default)


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    return int(_get_env(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(_get_env(key, str(default)))


def _get_env_path(key: str) -> Path | None:
    """Get optional path environment variable (unset or empty -> None)."""
    val = _get_env(key, "")
    return Path(val).expanduser() if val else None


@dataclass
class Config:
    """GraphMem Lite configuration.

    Attributes:
        data_dir: Directory for the memory log (default: ~/.graphmem_lite)
        memory_file: NDJSON graph log (default: <data_dir>/memory.jsonl)
        cache_ttl_seconds: How long a loaded graph is served from cache
        optimization_interval_hours: Auto-optimize on save after this long
        max_contexts: Contexts kept by optimize_memory
        search_strength_threshold: Relations at or below are hidden from search
        similarity_threshold: Minimum score for find_similar_entities
        pattern_ttl_days: validUntil offset for detected patterns
        stale_after_days: Entities not accessed for this long count as stale
        min_recency_days: Floor for the recency factor in relation strength
        max_clusters: Upper bound on semantic clusters
        vector_width: Buckets in the bag-of-words entity vector
    """

    data_dir: Path = field(
        default_factory=lambda: Path(_get_env("DATA_DIR", str(Path.home() / ".graphmem_lite")))
    )
    memory_file: Path | None = field(default_factory=lambda: _get_env_path("MEMORY_FILE"))
    cache_ttl_seconds: int = field(default_factory=lambda: _get_env_int("CACHE_TTL_SECONDS", 300))
    optimization_interval_hours: float = field(
        default_factory=lambda: _get_env_float("OPTIMIZATION_INTERVAL_HOURS", 24.0)
    )
    max_contexts: int = field(default_factory=lambda: _get_env_int("MAX_CONTEXTS", 1000))
    search_strength_threshold: float = field(
        default_factory=lambda: _get_env_float("SEARCH_STRENGTH_THRESHOLD", 0.5)
    )
    similarity_threshold: float = field(
        default_factory=lambda: _get_env_float("SIMILARITY_THRESHOLD", 0.5)
    )
    pattern_ttl_days: int = field(default_factory=lambda: _get_env_int("PATTERN_TTL_DAYS", 30))
    stale_after_days: int = field(default_factory=lambda: _get_env_int("STALE_AFTER_DAYS", 30))
    min_recency_days: float = field(default_factory=lambda: _get_env_float("MIN_RECENCY_DAYS", 1.0))
    max_clusters: int = field(default_factory=lambda: _get_env_int("MAX_CLUSTERS", 5))
    vector_width: int = field(default_factory=lambda: _get_env_int("VECTOR_WIDTH", 100))

    def __post_init__(self):
        """Ensure paths are Path objects and directories exist."""
        log.trace("Initializing Config")

        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if isinstance(self.memory_file, str):
            self.memory_file = Path(self.memory_file)
        if self.memory_file is None:
            self.memory_file = self.data_dir / "memory.jsonl"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.memory_file.parent.mkdir(parents=True, exist_ok=True)

        log.debug(f"data_dir={self.data_dir}")
        log.debug(f"memory_file={self.memory_file}")
        log.debug(f"cache_ttl_seconds={self.cache_ttl_seconds}")
        log.debug(f"optimization_interval_hours={self.optimization_interval_hours}")
        log.debug(f"max_contexts={self.max_contexts}")
        log.debug(
            f"thresholds: strength={self.search_strength_threshold}, "
            f"similarity={self.similarity_threshold}"
        )
        log.info(f"Config initialized: memory_file={self.memory_file}")

    @property
    def cache_ttl_ms(self) -> int:
        """Cache TTL in milliseconds."""
        return int(self.cache_ttl_seconds * 1000)

    @property
    def optimization_interval_ms(self) -> int:
        """Auto-optimization interval in milliseconds."""
        return int(self.optimization_interval_hours * 3600 * 1000)
