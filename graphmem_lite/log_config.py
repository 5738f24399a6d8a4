"""Logging configuration for GraphMem Lite.

All modules log through loguru with a bound ``name`` (``db.graph_log``,
``server`` ...). Three sinks are installed on import:
- stderr, filtered by level (stdout is reserved for the MCP transport)
- a daily file in the log directory, rotated at 10 MB, kept 7 days, zipped
- ``latest.log`` with everything down to TRACE

Environment variables:
- GRAPHMEM_LITE_LOG_LEVEL: stderr level (default: INFO)
- GRAPHMEM_LITE_LOG_DIR: log directory (default: ~/.graphmem_lite/logs)
- GRAPHMEM_LITE_LOG_STORAGE: level for the memory log store
- GRAPHMEM_LITE_LOG_ANALYTICS: level for patterns, clustering and quality
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}"

# Logger-name prefix -> env var holding its level override
COMPONENT_LEVEL_VARS = {
    "db.graph_log": "GRAPHMEM_LITE_LOG_STORAGE",
    "db.pattern_detector": "GRAPHMEM_LITE_LOG_ANALYTICS",
    "db.clustering": "GRAPHMEM_LITE_LOG_ANALYTICS",
    "db.quality": "GRAPHMEM_LITE_LOG_ANALYTICS",
}


def _level_no(level: str) -> int | None:
    try:
        return logger.level(level.upper()).no
    except ValueError:
        return None


class _LevelFilter:
    """stderr filter: a per-component level if one is set, else the global one."""

    def __init__(self, default_level: str, overrides: dict[str, str]):
        self.default_no = _level_no(default_level) or _level_no("INFO")
        self.overrides: dict[str, int] = {}
        for prefix, level in overrides.items():
            no = _level_no(level) if level else None
            if no is not None:
                self.overrides[prefix] = no

    def __call__(self, record) -> bool:
        name = record["extra"].get("name", "")
        for prefix, no in self.overrides.items():
            if name.startswith(prefix):
                return record["level"].no >= no
        return record["level"].no >= self.default_no


def configure_logging(log_dir: Path | None = None) -> Path:
    """Replace loguru's handlers with the GraphMem sinks.

    Args:
        log_dir: Where file sinks write (default: GRAPHMEM_LITE_LOG_DIR)

    Returns:
        The log directory in use
    """
    log_dir = Path(log_dir or os.getenv(
        "GRAPHMEM_LITE_LOG_DIR", str(Path.home() / ".graphmem_lite" / "logs")
    ))
    log_dir.mkdir(parents=True, exist_ok=True)

    overrides = {prefix: os.getenv(var, "") for prefix, var in COMPONENT_LEVEL_VARS.items()}
    level_filter = _LevelFilter(os.getenv("GRAPHMEM_LITE_LOG_LEVEL", "INFO"), overrides)

    logger.remove()
    logger.add(sys.stderr, level=0, filter=level_filter, format=CONSOLE_FORMAT, colorize=True)
    logger.add(
        log_dir / "graphmem_{time:YYYY-MM-DD}.log",
        level="DEBUG",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        enqueue=True,
    )
    logger.add(log_dir / "latest.log", level="TRACE", format=FILE_FORMAT, rotation="5 MB", retention=1)
    # Unbound records still need extra[name]
    logger.configure(extra={"name": "graphmem"})
    return log_dir


configure_logging()


def get_logger(name: str):
    """Logger with ``name`` bound, e.g. ``get_logger("db.manager")``."""
    return logger.bind(name=name)


@contextmanager
def log_timing(operation: str, log_instance=None, level: str = "debug", slow_ms: float | None = None):
    """Time a block and log how long it took.

    Args:
        operation: Description used in the log line
        log_instance: Bound logger (default: the global logger)
        level: Level for the timing line
        slow_ms: If set, blocks slower than this log at WARNING instead

    Yields:
        dict whose ``elapsed_ms`` is filled in when the block exits
    """
    log_fn = log_instance or logger
    timing = {"elapsed_ms": 0.0}
    start = perf_counter()
    try:
        yield timing
    finally:
        timing["elapsed_ms"] = elapsed = (perf_counter() - start) * 1000
        if slow_ms is not None and elapsed > slow_ms:
            log_fn.warning(f"{operation} slow: {elapsed:.1f}ms (> {slow_ms:.0f}ms)")
        else:
            getattr(log_fn, level)(f"{operation}: {elapsed:.1f}ms")


__all__ = ["logger", "configure_logging", "get_logger", "log_timing"]
