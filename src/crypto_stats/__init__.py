"""crypto-stats: scheduled crypto price snapshots with rolling statistics."""

__version__ = "0.1.0"
