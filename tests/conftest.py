"""
Shared fixtures for dep-risk-graph tests.
"""

import asyncio

import pytest

from dep_risk_graph import config
from dep_risk_graph.registry import PackageMetadata, PackageNotFoundError


class FakeRegistry:
    """In-memory registry keyed by package name."""

    def __init__(self, packages, errors=None, delay=0.0):
        self.packages = packages
        self.errors = errors or {}
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, package_name):
        self.calls.append(package_name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if package_name in self.errors:
                raise self.errors[package_name]
            if package_name not in self.packages:
                raise PackageNotFoundError(package_name)
            return PackageMetadata(
                name=package_name,
                version="1.0.0",
                dependency_specifiers=list(self.packages[package_name]),
                license="MIT",
            )
        finally:
            self.in_flight -= 1


@pytest.fixture(autouse=True)
def reset_config(monkeypatch, tmp_path):
    """Isolate tests from config files and explicit overrides."""
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
    for name in ("VERBOSE", "MAX_DEPTH", "FETCH_TIMEOUT", "MAX_CONCURRENCY"):
        monkeypatch.delenv(f"{config.ENV_PREFIX}{name}", raising=False)
    config.reset_overrides()
    yield
    config.reset_overrides()
