"""Co-occurrence pattern detection for GraphMem Lite.

A pattern records that two related entities also share observations or
tags. Patterns are derived data: they are rebuilt wholesale from entities
and relations and never persisted.

Every unordered entity pair is examined, so detection is O(n^2) in the
number of entities.
"""

from itertools import combinations

from graphmem_lite.log_config import get_logger, log_timing
from graphmem_lite.models import KnowledgeGraph, Pattern, PatternCategory
from graphmem_lite.time_utils import MS_PER_DAY

log = get_logger("db.pattern_detector")

STRONG_THRESHOLD = 0.7
MODERATE_THRESHOLD = 0.4


def categorize(confidence: float) -> PatternCategory:
    """Bucket a confidence value into weak / moderate / strong."""
    if confidence > STRONG_THRESHOLD:
        return PatternCategory.STRONG
    if confidence > MODERATE_THRESHOLD:
        return PatternCategory.MODERATE
    return PatternCategory.WEAK


class PatternDetector:
    """Mines pairwise entity co-occurrence into pattern records."""

    def __init__(self, ttl_days: int = 30):
        """Initialize PatternDetector.

        Args:
            ttl_days: How long a detected pattern stays valid (default: 30)
        """
        self.ttl_days = ttl_days

    def detect(self, graph: KnowledgeGraph, now: int) -> list[Pattern]:
        """Build the pattern list for the current graph.

        Frequency counts shared observations plus shared tags. Confidence is
        frequency divided by the larger observation count, capped at 1.0 so
        that shared tags cannot push it (or the priority copied from it)
        past 1.0.

        Args:
            graph: Graph to scan (not modified)
            now: Detection timestamp (ms)

        Returns:
            One pattern per related entity pair with shared features
        """
        patterns: list[Pattern] = []
        with log_timing("Pattern detection", log, level="trace"):
            for first, second in combinations(graph.entities, 2):
                if first.name == second.name:
                    continue
                relations = [r for r in graph.relations if r.connects(first.name, second.name)]
                if not relations:
                    continue

                second_obs = set(second.observations)
                second_tags = set(second.tags)
                shared_obs = [o for o in first.observations if o in second_obs]
                shared_tags = [t for t in first.tags if t in second_tags]
                if not shared_obs and not shared_tags:
                    continue

                frequency = len(shared_obs) + len(shared_tags)
                largest = max(len(first.observations), len(second.observations), 1)
                confidence = min(1.0, frequency / largest)

                patterns.append(Pattern(
                    id=f"pattern_{first.name}_{second.name}_{now}",
                    entities=[first.name, second.name],
                    relations=list(relations),
                    frequency=frequency,
                    last_seen=now,
                    confidence=confidence,
                    context=f"Pattern between {first.name} and {second.name}",
                    category=categorize(confidence),
                    priority=confidence,
                    valid_until=now + self.ttl_days * MS_PER_DAY,
                ))

        log.debug(f"Detected {len(patterns)} patterns across {len(graph.entities)} entities")
        return patterns

    def refresh(self, graph: KnowledgeGraph, now: int) -> None:
        """Replace ``graph.patterns`` with a fresh detection pass."""
        graph.patterns = self.detect(graph, now)
