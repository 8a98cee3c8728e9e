"""
Risk scoring for PyPI packages.
"""

from dep_risk_graph.risk.base import (
    UNKNOWN,
    DependencyStats,
    RiskAssessment,
    RiskBreakdown,
    RiskContext,
    ScoringWeights,
)

__all__ = [
    "UNKNOWN",
    "DependencyStats",
    "RiskAssessment",
    "RiskBreakdown",
    "RiskContext",
    "ScoringWeights",
]
