"""Operational (maintenance) risk dimension."""

from datetime import datetime

from dep_risk_graph.risk.base import (
    DimensionSpec,
    OperationalSignals,
    RiskContext,
    clamp,
)

BASE_SCORE = 3.0


def classify_maintenance(days_since_last_update: int | None, archived: bool = False) -> str:
    """Map update recency to a maintenance frequency label."""
    if archived:
        return "abandoned"
    if days_since_last_update is None:
        return "unknown"
    if days_since_last_update > 730:
        return "abandoned"
    if days_since_last_update > 180:
        return "slow"
    if days_since_last_update < 30:
        return "active"
    return "moderate"


def estimate_bus_factor(context: RiskContext) -> int:
    """
    Estimate how many maintainers would have to leave to stall the project.

    Prefers a maintainer count from repository metadata, then a fork-based
    heuristic (one per hundred forks), then the registry's maintainer list.
    """
    repository = context.repository
    if repository is not None:
        if repository.maintainers:
            return max(1, repository.maintainers)
        if repository.forks is not None:
            return max(1, repository.forks // 100)
    if context.metadata is not None and context.metadata.maintainers:
        return len(context.metadata.maintainers)
    return 1


def _days_since(moment: datetime | None, now: datetime) -> int | None:
    if moment is None:
        return None
    return abs((now - moment).days)


def _maturity_bonus(age_years: float, stars: int, cve_count: int) -> float:
    if age_years >= 5 and stars > 5000 and cve_count == 0:
        return -1.5
    if age_years >= 3 and stars > 1000 and cve_count <= 2:
        return -0.8
    if age_years >= 2 and stars > 500:
        return -0.4
    if age_years < 0.5 and stars < 100:
        return 1.0
    if age_years < 1 and stars > 500:
        return 0.2
    return 0.0


def _popularity_adjustment(downloads: int) -> float:
    """Score change from monthly downloads, used when star counts are unknown."""
    if downloads > 100_000_000:
        return -1.0
    if downloads > 10_000_000:
        return -0.5
    if downloads > 1_000_000:
        return -0.2
    if downloads > 100_000:
        return 0.0
    return 0.5


def score_operational(context: RiskContext) -> OperationalSignals | None:
    """
    Score maintenance health.

    Uses repository metadata when available and falls back to the registry's
    last release date. Monthly downloads stand in for the community size
    when the star count is unknown. Returns None when neither source answered.
    """
    repository = context.repository
    metadata = context.metadata
    if repository is None and metadata is None:
        return None

    now = context.current_time()
    concerns: list[str] = []
    score = BASE_SCORE

    last_update = repository.last_update if repository is not None else None
    if last_update is None and metadata is not None:
        last_update = metadata.release_date
    days = _days_since(last_update, now)
    archived = repository.archived if repository is not None else False
    frequency = classify_maintenance(days, archived)
    bus_factor = estimate_bus_factor(context)

    if archived:
        score += 5.0
        concerns.append("Repository is archived (no longer maintained)")
    elif days is None:
        score += 2.5
        concerns.append("No release or activity date available")
    elif days > 730:
        score += 4.0
        concerns.append(f"Abandoned (last update {days // 365} years ago)")
    elif days > 365:
        score += 2.5
        concerns.append(f"Stale (last update {days // 30} months ago)")
    elif days > 180:
        score += 1.0
        concerns.append(f"Infrequent updates (last update {days // 30} months ago)")
    elif days < 30:
        score -= 1.5

    community_size = 0
    if repository is not None and repository.stars is not None:
        community_size = repository.stars
        if community_size >= 50000:
            score -= 2.0
        elif community_size >= 10000:
            score -= 1.5
        elif community_size >= 1000:
            score -= 0.5
        elif community_size < 100:
            score += 1.0
            concerns.append(f"Small community ({community_size} stars)")

        if repository.open_issues is not None:
            issue_ratio = repository.open_issues / (community_size + 1)
            if issue_ratio > 0.2:
                score += 1.0
                concerns.append(f"High issue count ({repository.open_issues} open issues)")

        if repository.created_at is not None:
            age_years = abs((now - repository.created_at).days) / 365
            cve_count = len(context.vulnerabilities or [])
            bonus = _maturity_bonus(age_years, community_size, cve_count)
            score += bonus
            if bonus <= -0.5:
                concerns.append(f"Mature package ({age_years:.1f} years established)")
    elif repository is not None and repository.downloads is not None:
        score += _popularity_adjustment(repository.downloads)
        if repository.downloads <= 100_000:
            concerns.append(f"Low download count ({repository.downloads} last month)")

    if bus_factor == 1 and community_size < 500:
        score += 0.5
        concerns.append("Single maintainer (bus factor = 1)")

    return OperationalSignals(
        days_since_last_update=days,
        maintenance_frequency=frequency,
        community_size=community_size,
        bus_factor=bus_factor,
        score=round(clamp(score), 1),
        is_archived=archived,
        concerns=concerns,
    )


DIMENSION = DimensionSpec(
    name="operational",
    scorer=score_operational,
    error_log="[yellow]Operational scoring incomplete for {package}: {error}[/yellow]",
)
