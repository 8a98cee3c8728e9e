"""
Tests for risk aggregation.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from dep_risk_graph.community import RepositoryMetadata
from dep_risk_graph.registry import PackageMetadata, PackageNotFoundError
from dep_risk_graph.risk.aggregator import (
    RiskAggregator,
    apply_dimension,
    assess,
    combine_scores,
    primary_concern,
    risk_level,
)
from dep_risk_graph.risk.base import (
    DependencyStats,
    DimensionSpec,
    OperationalSignals,
    RiskBreakdown,
    RiskContext,
    ScoringWeights,
    SecuritySignals,
)
from dep_risk_graph.vulnerabilities import Vulnerability

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def security(score):
    return SecuritySignals(1, 0, True, score)


def operational(score):
    return OperationalSignals(10, "active", 100, 2, score)


def make_aggregator(vulnerabilities=None, repository=None, metadata=None, downloads=None):
    registry = MagicMock()
    registry.fetch = AsyncMock(
        return_value=metadata
        or PackageMetadata(
            name="pkg",
            version="2.0",
            dependency_specifiers=[],
            license="MIT",
            release_date=NOW - timedelta(days=5),
            repository_url="https://github.com/org/pkg",
        )
    )
    vulnerability_client = MagicMock()
    vulnerability_client.lookup = AsyncMock(return_value=vulnerabilities or [])
    community_client = MagicMock()
    community_client.lookup = AsyncMock(return_value=repository)
    downloads_client = MagicMock()
    downloads_client.monthly_downloads = AsyncMock(return_value=downloads)
    return RiskAggregator(
        registry=registry,
        vulnerability_client=vulnerability_client,
        community_client=community_client,
        downloads_client=downloads_client,
    )


class TestCombination:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (None, "unknown"),
            (9.0, "critical"),
            (8.0, "critical"),
            (6.0, "high"),
            (4.0, "moderate"),
            (2.0, "low"),
            (1.9, "minimal"),
        ],
    )
    def test_risk_level(self, score, expected):
        assert risk_level(score) == expected

    def test_single_dimension_is_its_own_score(self):
        breakdown = RiskBreakdown(security=security(4.4))
        assert combine_scores(breakdown, ScoringWeights()) == 4.4

    def test_absent_dimensions_renormalize_weights(self):
        breakdown = RiskBreakdown(security=security(8.0), operational=operational(3.0))
        # (8.0 * 0.5 + 3.0 * 0.3) / 0.8
        assert combine_scores(breakdown, ScoringWeights()) == 6.1

    def test_all_absent_is_none(self):
        assert combine_scores(RiskBreakdown(), ScoringWeights()) is None

    def test_custom_weights(self):
        breakdown = RiskBreakdown(security=security(8.0), operational=operational(2.0))
        weights = ScoringWeights(security=0.0, operational=1.0)
        assert combine_scores(breakdown, weights) == 2.0

    def test_primary_concern(self):
        assert primary_concern(RiskBreakdown()) == "none"
        assert primary_concern(RiskBreakdown(security=security(3.9))) == "none"
        breakdown = RiskBreakdown(security=security(4.4), operational=operational(6.0))
        assert primary_concern(breakdown) == "operational"

    def test_absent_dimension_renders_unknown(self):
        data = RiskBreakdown(security=security(1.0)).to_dict()
        assert data["operational"] == "unknown"
        assert data["supply_chain"] == "unknown"
        assert data["security"]["score"] == 1.0


class TestDimensionErrors:
    def test_error_without_fallback_is_absent(self):
        def boom(context):
            raise KeyError("stars")

        spec = DimensionSpec(
            name="security",
            scorer=boom,
            error_log="[yellow]Security scoring incomplete for {package}: {error}[/yellow]",
        )
        with patch("dep_risk_graph.risk.aggregator.console") as mock_console:
            assert apply_dimension(spec, RiskContext("pkg")) is None
        mock_console.print.assert_called_once()
        assert "pkg" in mock_console.print.call_args.args[0]

    def test_error_uses_on_error_fallback(self):
        def boom(context):
            raise ValueError("bad data")

        spec = DimensionSpec(
            name="security", scorer=boom, on_error=lambda error: security(10.0)
        )
        assessment = assess(RiskContext("pkg"), dimensions=[spec])
        assert assessment.breakdown.security.score == 10.0
        assert assessment.risk_score == 10.0
        assert assessment.breakdown.operational is None


class TestRiskAggregator:
    def test_score_with_all_sources(self):
        aggregator = make_aggregator(
            vulnerabilities=[Vulnerability("GHSA-1", 9.8, "RCE")],
            repository=RepositoryMetadata(
                stars=20000, forks=3000, open_issues=50, last_update=NOW - timedelta(days=3)
            ),
        )

        assessment = asyncio.run(
            aggregator.score(
                "pkg", dependency_stats=DependencyStats(2, 5, 1), now=NOW
            )
        )

        breakdown = assessment.breakdown
        assert breakdown.security.critical_cve_count == 1
        assert breakdown.operational.maintenance_frequency == "active"
        assert breakdown.supply_chain.direct_dependencies == 2
        assert breakdown.compliance.license == "MIT"
        assert assessment.risk_score is not None
        assert assessment.primary_concern == "security"
        assert assessment.confidence == 100
        aggregator.vulnerability_client.lookup.assert_awaited_once_with("pkg", "2.0")
        aggregator.community_client.lookup.assert_awaited_once_with(
            "https://github.com/org/pkg"
        )

    def test_supplied_metadata_skips_registry(self):
        aggregator = make_aggregator()
        metadata = PackageMetadata(name="pkg", version="1.0", dependency_specifiers=[])

        asyncio.run(aggregator.score("pkg", metadata=metadata, now=NOW))

        aggregator.registry.fetch.assert_not_awaited()
        aggregator.community_client.lookup.assert_not_awaited()

    def test_failed_vulnerability_lookup_is_unknown(self):
        aggregator = make_aggregator()
        aggregator.vulnerability_client.lookup.side_effect = httpx.ConnectError("down")

        assessment = asyncio.run(aggregator.score("pkg", now=NOW))

        assert assessment.breakdown.security is None
        assert assessment.breakdown.to_dict()["security"] == "unknown"
        assert assessment.breakdown.operational is not None

    def test_unknown_package_has_no_score(self):
        aggregator = make_aggregator()
        aggregator.registry.fetch.side_effect = PackageNotFoundError("ghost")
        aggregator.vulnerability_client.lookup.side_effect = httpx.ConnectError("down")

        assessment = asyncio.run(aggregator.score("ghost", now=NOW))

        assert assessment.risk_score is None
        assert assessment.risk_level == "unknown"
        assert assessment.primary_concern == "none"
        assert assessment.confidence == 0

    def test_downloads_join_repository_metadata(self):
        aggregator = make_aggregator(
            repository=RepositoryMetadata(stars=20000, maintainers=12),
            downloads=3_000_000,
        )

        context = asyncio.run(aggregator.collect("pkg", now=NOW))

        assert context.repository.downloads == 3_000_000
        assert context.repository.maintainers == 12
        aggregator.downloads_client.monthly_downloads.assert_awaited_once_with("pkg")

    def test_downloads_without_repository(self):
        aggregator = make_aggregator(
            metadata=PackageMetadata(name="pkg", version="1.0", dependency_specifiers=[]),
            downloads=50,
        )

        assessment = asyncio.run(aggregator.score("pkg", now=NOW))

        assert "Low download count (50 last month)" in assessment.breakdown.operational.concerns

    def test_failed_download_lookup_is_ignored(self):
        aggregator = make_aggregator()
        aggregator.downloads_client.monthly_downloads.side_effect = httpx.ConnectError("down")

        context = asyncio.run(aggregator.collect("pkg", now=NOW))

        assert context.repository is None
