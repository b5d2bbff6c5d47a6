"""Statistics over stored snapshots."""

from crypto_stats.stats.engine import DEFAULT_WINDOW, StatsEngine, population_stats

__all__ = [
    "DEFAULT_WINDOW",
    "StatsEngine",
    "population_stats",
]
