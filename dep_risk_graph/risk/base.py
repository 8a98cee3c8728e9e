"""
Shared risk types.

Every dimension of a ``RiskBreakdown`` is optional. ``None`` means the
signal could not be collected and must be read as "unknown", never as
"no risk".
"""

from datetime import datetime, timezone
from typing import Any, Callable, NamedTuple

UNKNOWN = "unknown"


class SecuritySignals(NamedTuple):
    """Vulnerability exposure of a package."""

    cve_count: int
    critical_cve_count: int
    known_vulnerabilities: bool
    score: float
    vulnerability_ids: list[str] = []
    concerns: list[str] = []


class OperationalSignals(NamedTuple):
    """Maintenance health of a package.

    ``days_since_last_update`` is None when no release or push date is known,
    which is treated as unbounded.
    """

    days_since_last_update: int | None
    maintenance_frequency: str  # "active", "moderate", "slow", "abandoned", "unknown"
    community_size: int
    bus_factor: int
    score: float
    is_archived: bool = False
    concerns: list[str] = []


class SupplyChainSignals(NamedTuple):
    """Exposure through a package's own dependencies.

    ``depth_level`` is the deepest tree level reached through the package.
    """

    direct_dependencies: int
    transitive_dependencies: int
    depth_level: int
    score: float
    concerns: list[str] = []


class ComplianceSignals(NamedTuple):
    """License obligations and restrictions."""

    license: str
    category: str
    score: float
    concerns: list[str] = []


class RiskBreakdown(NamedTuple):
    """Per-dimension signals behind an aggregate risk score."""

    security: SecuritySignals | None = None
    operational: OperationalSignals | None = None
    supply_chain: SupplyChainSignals | None = None
    compliance: ComplianceSignals | None = None

    def present_dimensions(self) -> dict[str, Any]:
        """Dimensions that carry data, keyed by field name."""
        return {
            name: value for name, value in self._asdict().items() if value is not None
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize with absent dimensions rendered as ``"unknown"``."""
        data: dict[str, Any] = {}
        for name, value in self._asdict().items():
            if value is None:
                data[name] = UNKNOWN
                continue
            fields = value._asdict()
            if name == "operational" and fields["days_since_last_update"] is None:
                fields["days_since_last_update"] = UNKNOWN
            data[name] = fields
        return data


class RiskAssessment(NamedTuple):
    """Output of the risk aggregator for one package."""

    risk_score: float | None
    breakdown: RiskBreakdown
    risk_level: str  # "critical", "high", "moderate", "low", "minimal", "unknown"
    primary_concern: str  # dimension name or "none"
    confidence: int  # 0-100


class ScoringWeights(NamedTuple):
    """Weights of each dimension in the aggregate score."""

    security: float = 0.5
    operational: float = 0.3
    supply_chain: float = 0.1
    compliance: float = 0.1


class DimensionSpec(NamedTuple):
    """Specification for a risk dimension scorer."""

    name: str
    scorer: Callable[["RiskContext"], Any]
    on_error: Callable[[Exception], Any] | None = None
    error_log: str | None = None


def clamp(score: float, low: float = 0.0, high: float = 10.0) -> float:
    return max(low, min(high, score))


class DependencyStats(NamedTuple):
    """Position of a package inside a resolved tree.

    ``depth_level`` is the deepest discovery level reachable from the package.
    """

    direct_dependencies: int
    transitive_dependencies: int
    depth_level: int


class RiskContext(NamedTuple):
    """Signals collected for one package before scoring.

    A None source means the lookup was not possible or failed.
    """

    package_name: str
    metadata: Any = None  # registry.PackageMetadata
    vulnerabilities: list | None = None  # list[vulnerabilities.Vulnerability]
    repository: Any = None  # community.RepositoryMetadata
    dependency_stats: DependencyStats | None = None
    now: datetime | None = None

    def current_time(self) -> datetime:
        return self.now or datetime.now(timezone.utc)
