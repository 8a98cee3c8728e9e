"""
Tests for the configuration module.
"""

import pytest

from dep_risk_graph import config
from dep_risk_graph.config import (
    get_excluded_packages,
    get_fetch_timeout,
    get_max_concurrency,
    get_max_depth,
    get_pypistats_url,
    get_registry_url,
    is_package_excluded,
    is_verbose_enabled,
    set_fetch_timeout,
    set_max_concurrency,
    set_max_depth,
    set_verbose,
)


def test_get_excluded_packages_from_local_config(tmp_path):
    """Test loading excluded packages from .dep-risk-graph.toml."""
    (tmp_path / ".dep-risk-graph.toml").write_text(
        """
[tool.dep-risk-graph]
exclude = ["flask", "django"]
"""
    )

    excluded = get_excluded_packages()
    assert "flask" in excluded
    assert "django" in excluded


def test_get_excluded_packages_from_pyproject(tmp_path):
    """Test loading excluded packages from pyproject.toml."""
    (tmp_path / "pyproject.toml").write_text(
        """
[tool.dep-risk-graph]
exclude = ["numpy", "pandas", "numpy"]
"""
    )

    excluded = get_excluded_packages()
    assert sorted(excluded) == ["numpy", "pandas"]


def test_local_config_takes_priority(tmp_path):
    """Test .dep-risk-graph.toml wins over pyproject.toml."""
    (tmp_path / ".dep-risk-graph.toml").write_text(
        '[tool.dep-risk-graph]\nexclude = ["local"]\n'
    )
    (tmp_path / "pyproject.toml").write_text(
        '[tool.dep-risk-graph]\nexclude = ["project"]\n'
    )

    assert get_excluded_packages() == ["local"]


def test_is_package_excluded_case_insensitive(tmp_path):
    """Test exclusion matching ignores case."""
    (tmp_path / ".dep-risk-graph.toml").write_text(
        '[tool.dep-risk-graph]\nexclude = ["Requests"]\n'
    )

    assert is_package_excluded("requests")
    assert is_package_excluded("REQUESTS")
    assert not is_package_excluded("flask")


def test_no_config_files():
    """Test defaults when no config file exists."""
    assert get_excluded_packages() == []
    assert get_max_depth() == config.DEFAULT_MAX_DEPTH
    assert get_fetch_timeout() == config.DEFAULT_FETCH_TIMEOUT
    assert get_max_concurrency() == 1
    assert get_registry_url() == "https://pypi.org/pypi"
    assert get_pypistats_url() == "https://pypistats.org/api"
    assert not is_verbose_enabled()


def test_invalid_toml_raises(tmp_path):
    (tmp_path / ".dep-risk-graph.toml").write_text("[tool.dep-risk-graph\n")

    with pytest.raises(ValueError):
        get_excluded_packages()


def test_priority_setter_over_env_over_file(tmp_path, monkeypatch):
    """Test explicit value > environment variable > config file."""
    (tmp_path / ".dep-risk-graph.toml").write_text(
        '[tool.dep-risk-graph]\nmax_depth = 5\nfetch_timeout = 2.5\n'
    )
    assert get_max_depth() == 5
    assert get_fetch_timeout() == 2.5

    monkeypatch.setenv("DEP_RISK_GRAPH_MAX_DEPTH", "7")
    assert get_max_depth() == 7

    set_max_depth(1)
    assert get_max_depth() == 1


def test_invalid_env_value_falls_back(monkeypatch):
    monkeypatch.setenv("DEP_RISK_GRAPH_MAX_CONCURRENCY", "many")
    assert get_max_concurrency() == 1


def test_verbose_from_env(monkeypatch):
    monkeypatch.setenv("DEP_RISK_GRAPH_VERBOSE", "yes")
    assert is_verbose_enabled()

    set_verbose(False)
    assert not is_verbose_enabled()


def test_registry_url_override(monkeypatch):
    monkeypatch.setenv("DEP_RISK_GRAPH_REGISTRY_URL", "https://mirror.example/pypi/")
    assert get_registry_url() == "https://mirror.example/pypi"


@pytest.mark.parametrize(
    "setter,value",
    [(set_max_depth, -1), (set_fetch_timeout, 0), (set_max_concurrency, 0)],
)
def test_setters_reject_invalid_values(setter, value):
    with pytest.raises(ValueError):
        setter(value)
