"""
Multi-dimensional risk aggregation.

Collects registry, vulnerability and repository signals for one package,
scores each risk dimension independently and combines the dimensions that
carry data into a single 0-10 score.
"""

from datetime import datetime

import httpx
from rich.console import Console

from dep_risk_graph.community import GitHubCommunityClient, RepositoryMetadata
from dep_risk_graph.config import is_verbose_enabled
from dep_risk_graph.registry import (
    PackageMetadata,
    PyPIRegistry,
    PyPIStatsClient,
    RegistryError,
)
from dep_risk_graph.risk import compliance, operational, security, supply_chain
from dep_risk_graph.risk.base import (
    DependencyStats,
    DimensionSpec,
    RiskAssessment,
    RiskBreakdown,
    RiskContext,
    ScoringWeights,
    clamp,
)
from dep_risk_graph.vulnerabilities import OSVClient, Vulnerability

console = Console(stderr=True)

DIMENSIONS: list[DimensionSpec] = [
    security.DIMENSION,
    operational.DIMENSION,
    supply_chain.DIMENSION,
    compliance.DIMENSION,
]

# A dimension scoring below this is not worth calling out.
CONCERN_THRESHOLD = 4.0


def risk_level(score: float | None) -> str:
    if score is None:
        return "unknown"
    if score >= 8:
        return "critical"
    if score >= 6:
        return "high"
    if score >= 4:
        return "moderate"
    if score >= 2:
        return "low"
    return "minimal"


def combine_scores(breakdown: RiskBreakdown, weights: ScoringWeights) -> float | None:
    """
    Weighted mean of the present dimensions.

    Weights are renormalized over the dimensions that carry data, so an
    absent dimension neither lowers nor raises the result. Returns None when
    no dimension is present.
    """
    present = breakdown.present_dimensions()
    weight_map = weights._asdict()
    total_weight = sum(weight_map[name] for name in present)
    if not present or total_weight <= 0:
        return None
    weighted = sum(signals.score * weight_map[name] for name, signals in present.items())
    return round(clamp(weighted / total_weight), 1)


def primary_concern(breakdown: RiskBreakdown) -> str:
    present = breakdown.present_dimensions()
    if not present:
        return "none"
    name, signals = max(present.items(), key=lambda item: item[1].score)
    if signals.score < CONCERN_THRESHOLD:
        return "none"
    return name


def confidence(context: RiskContext, breakdown: RiskBreakdown) -> int:
    """Rough percentage of how much of the picture the signals cover."""
    if not breakdown.present_dimensions():
        return 0
    value = 50
    if context.vulnerabilities is not None:
        value += 15
        if context.vulnerabilities:
            value += 5
    if context.repository is not None:
        value += 20
        if (context.repository.stars or 0) > 1000:
            value += 10
    return min(100, value)


def apply_dimension(spec: DimensionSpec, context: RiskContext):
    """Run one dimension scorer, falling back to ``on_error`` on failure."""
    try:
        return spec.scorer(context)
    except Exception as e:
        if spec.error_log:
            console.print(spec.error_log.format(package=context.package_name, error=e))
        elif is_verbose_enabled():
            console.print(
                f"[dim]{spec.name} scoring failed for {context.package_name}: {e}[/dim]"
            )
        if spec.on_error is not None:
            return spec.on_error(e)
        return None


def assess(
    context: RiskContext,
    weights: ScoringWeights | None = None,
    dimensions: list[DimensionSpec] | None = None,
) -> RiskAssessment:
    """Score every dimension for an already-collected context."""
    weights = weights or ScoringWeights()
    breakdown = RiskBreakdown(
        **{
            spec.name: apply_dimension(spec, context)
            for spec in (dimensions if dimensions is not None else DIMENSIONS)
        }
    )
    score = combine_scores(breakdown, weights)
    return RiskAssessment(
        risk_score=score,
        breakdown=breakdown,
        risk_level=risk_level(score),
        primary_concern=primary_concern(breakdown),
        confidence=confidence(context, breakdown),
    )


class RiskAggregator:
    """Fetch signals for a package and turn them into a ``RiskAssessment``."""

    def __init__(
        self,
        registry: PyPIRegistry | None = None,
        vulnerability_client: OSVClient | None = None,
        community_client: GitHubCommunityClient | None = None,
        downloads_client: PyPIStatsClient | None = None,
        weights: ScoringWeights | None = None,
        dimensions: list[DimensionSpec] | None = None,
    ):
        self.registry = registry or PyPIRegistry()
        self.vulnerability_client = vulnerability_client or OSVClient()
        self.community_client = community_client or GitHubCommunityClient()
        self.downloads_client = downloads_client or PyPIStatsClient()
        self.weights = weights or ScoringWeights()
        self.dimensions = dimensions if dimensions is not None else DIMENSIONS

    async def _metadata(self, package_name: str) -> PackageMetadata | None:
        try:
            return await self.registry.fetch(package_name)
        except RegistryError as e:
            if is_verbose_enabled():
                console.print(f"[dim]No registry data for {package_name}: {e}[/dim]")
            return None

    async def _vulnerabilities(
        self, package_name: str, version: str | None
    ) -> list[Vulnerability] | None:
        try:
            return await self.vulnerability_client.lookup(package_name, version)
        except (httpx.HTTPError, ValueError) as e:
            console.print(
                f"[yellow]Vulnerability lookup failed for {package_name}: {e}[/yellow]"
            )
            return None

    async def _repository(
        self, metadata: PackageMetadata | None
    ) -> RepositoryMetadata | None:
        if metadata is None or not metadata.repository_url:
            return None
        try:
            return await self.community_client.lookup(metadata.repository_url)
        except (httpx.HTTPError, ValueError) as e:
            if is_verbose_enabled():
                console.print(
                    f"[dim]Repository lookup failed for {metadata.name}: {e}[/dim]"
                )
            return None

    async def _downloads(self, package_name: str) -> int | None:
        try:
            return await self.downloads_client.monthly_downloads(package_name)
        except (httpx.HTTPError, ValueError) as e:
            if is_verbose_enabled():
                console.print(
                    f"[dim]Download stats unavailable for {package_name}: {e}[/dim]"
                )
            return None

    async def collect(
        self,
        package_name: str,
        metadata: PackageMetadata | None = None,
        dependency_stats: DependencyStats | None = None,
        now: datetime | None = None,
    ) -> RiskContext:
        """
        Gather every signal source for a package.

        A source that fails is recorded as None rather than raising, so the
        matching dimension is reported as unknown.
        """
        if metadata is None:
            metadata = await self._metadata(package_name)
        version = metadata.version if metadata is not None else None
        vulnerabilities = await self._vulnerabilities(package_name, version)
        repository = await self._repository(metadata)
        downloads = await self._downloads(package_name)
        if downloads is not None:
            repository = (repository or RepositoryMetadata())._replace(
                downloads=downloads
            )
        return RiskContext(
            package_name=package_name,
            metadata=metadata,
            vulnerabilities=vulnerabilities,
            repository=repository,
            dependency_stats=dependency_stats,
            now=now,
        )

    async def score(
        self,
        package_name: str,
        metadata: PackageMetadata | None = None,
        dependency_stats: DependencyStats | None = None,
        now: datetime | None = None,
    ) -> RiskAssessment:
        """
        Score one package.

        Args:
            package_name: Package to score.
            metadata: Registry metadata already fetched by the caller.
            dependency_stats: Position of the package in a resolved tree.
                Without it the supply chain dimension is unknown.
            now: Reference time for recency signals.

        Returns:
            RiskAssessment with ``risk_score`` None when no dimension had data.
        """
        context = await self.collect(package_name, metadata, dependency_stats, now)
        return assess(context, self.weights, self.dimensions)
