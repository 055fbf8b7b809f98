"""
Analytics: activity sources and the reputation trust engine.

Sources fetch raw activity per provider; compute_score turns the aggregated
activity into a 0-100 score with a named breakdown.
"""

from backend_passport.analytics.sources import (
    ActivitySource,
    BlockExplorerSource,
    GovernanceSource,
    GraphIndexerSource,
    build_default_sources,
)
from backend_passport.analytics.trust_engine import ScoreBreakdown, ScoreResult, compute_score

__all__ = [
    "ActivitySource",
    "BlockExplorerSource",
    "GovernanceSource",
    "GraphIndexerSource",
    "ScoreBreakdown",
    "ScoreResult",
    "build_default_sources",
    "compute_score",
]
