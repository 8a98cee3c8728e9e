"""
Configuration management for dep-risk-graph.

Settings are resolved from (highest priority first):
1. Values set explicitly through the ``set_*`` functions (CLI flags)
2. ``DEP_RISK_GRAPH_*`` environment variables
3. .dep-risk-graph.toml (local config)
4. pyproject.toml (project-level config)
5. Built-in defaults
"""

import os
import tomllib
from pathlib import Path
from typing import Any

# project_root is the parent directory of dep_risk_graph/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_SECTION = "dep-risk-graph"
ENV_PREFIX = "DEP_RISK_GRAPH_"

DEFAULT_MAX_DEPTH = 3
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENCY = 1
DEFAULT_REGISTRY_URL = "https://pypi.org/pypi"
DEFAULT_OSV_URL = "https://api.osv.dev/v1"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_PYPISTATS_URL = "https://pypistats.org/api"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

_VERBOSE: bool | None = None
_MAX_DEPTH: int | None = None
_FETCH_TIMEOUT: float | None = None
_MAX_CONCURRENCY: int | None = None


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _get_tool_section() -> dict[str, Any]:
    """
    Return the ``[tool.dep-risk-graph]`` table.

    The local config file wins over pyproject.toml; the two are not merged.
    """
    for filename in (".dep-risk-graph.toml", "pyproject.toml"):
        config_path = PROJECT_ROOT / filename
        if config_path.exists():
            section = (
                load_config_file(config_path).get("tool", {}).get(CONFIG_SECTION, {})
            )
            if section:
                return section
    return {}


def _get_env(name: str) -> str | None:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    return value if value else None


def get_excluded_packages() -> list[str]:
    """
    Load excluded packages from configuration files.

    Excluded packages are never fetched or expanded by the resolver.

    Returns:
        List of excluded package names.
    """
    excluded = _get_tool_section().get("exclude", [])
    return list(set(excluded))  # Remove duplicates


def is_package_excluded(package_name: str) -> bool:
    """
    Check if a package is in the excluded list.

    Args:
        package_name: Name of the package to check.

    Returns:
        True if the package is excluded, False otherwise.
    """
    excluded = get_excluded_packages()
    return package_name.lower() in [pkg.lower() for pkg in excluded]


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL


def set_verbose(verbose: bool) -> None:
    """Enable or disable verbose diagnostic output."""
    global _VERBOSE
    _VERBOSE = verbose


def is_verbose_enabled() -> bool:
    """
    Check if verbose output is enabled.

    Priority:
    1. Explicitly set value via set_verbose()
    2. DEP_RISK_GRAPH_VERBOSE environment variable
    3. ``verbose`` key in config files
    4. Default: False
    """
    if _VERBOSE is not None:
        return _VERBOSE

    env_verbose = _get_env("VERBOSE")
    if env_verbose:
        return env_verbose.lower() in ("1", "true", "yes", "on")

    return bool(_get_tool_section().get("verbose", False))


def get_max_depth() -> int:
    """
    Get the default maximum resolution depth.

    Priority:
    1. Explicitly set value via set_max_depth()
    2. DEP_RISK_GRAPH_MAX_DEPTH environment variable
    3. ``max_depth`` key in config files
    4. Default: 3
    """
    if _MAX_DEPTH is not None:
        return _MAX_DEPTH

    env_depth = _get_env("MAX_DEPTH")
    if env_depth:
        try:
            return int(env_depth)
        except ValueError:
            pass

    section = _get_tool_section()
    if "max_depth" in section:
        return int(section["max_depth"])

    return DEFAULT_MAX_DEPTH


def set_max_depth(depth: int) -> None:
    """Set the default maximum resolution depth explicitly."""
    global _MAX_DEPTH
    if depth < 0:
        raise ValueError(f"max depth must be >= 0, got {depth}")
    _MAX_DEPTH = depth


def get_fetch_timeout() -> float:
    """
    Get the per-fetch timeout in seconds.

    Priority:
    1. Explicitly set value via set_fetch_timeout()
    2. DEP_RISK_GRAPH_FETCH_TIMEOUT environment variable
    3. ``fetch_timeout`` key in config files
    4. Default: 10 seconds
    """
    if _FETCH_TIMEOUT is not None:
        return _FETCH_TIMEOUT

    env_timeout = _get_env("FETCH_TIMEOUT")
    if env_timeout:
        try:
            return float(env_timeout)
        except ValueError:
            pass

    section = _get_tool_section()
    if "fetch_timeout" in section:
        return float(section["fetch_timeout"])

    return DEFAULT_FETCH_TIMEOUT


def set_fetch_timeout(seconds: float) -> None:
    """Set the per-fetch timeout explicitly."""
    global _FETCH_TIMEOUT
    if seconds <= 0:
        raise ValueError(f"fetch timeout must be positive, got {seconds}")
    _FETCH_TIMEOUT = seconds


def get_max_concurrency() -> int:
    """
    Get the number of sibling fetches allowed in flight at once.

    1 keeps the strictly sequential depth-first walk.
    """
    if _MAX_CONCURRENCY is not None:
        return _MAX_CONCURRENCY

    env_workers = _get_env("MAX_CONCURRENCY")
    if env_workers:
        try:
            return max(1, int(env_workers))
        except ValueError:
            pass

    section = _get_tool_section()
    if "max_concurrency" in section:
        return max(1, int(section["max_concurrency"]))

    return DEFAULT_MAX_CONCURRENCY


def set_max_concurrency(workers: int) -> None:
    """Set the concurrency bound explicitly."""
    global _MAX_CONCURRENCY
    if workers < 1:
        raise ValueError(f"max concurrency must be >= 1, got {workers}")
    _MAX_CONCURRENCY = workers


def get_registry_url() -> str:
    """Base URL of the PyPI JSON API."""
    return (
        _get_env("REGISTRY_URL")
        or _get_tool_section().get("registry_url")
        or DEFAULT_REGISTRY_URL
    ).rstrip("/")


def get_osv_url() -> str:
    """Base URL of the OSV vulnerability API."""
    return (
        _get_env("OSV_URL") or _get_tool_section().get("osv_url") or DEFAULT_OSV_URL
    ).rstrip("/")


def get_github_api_url() -> str:
    """Base URL of the GitHub REST API."""
    return (
        _get_env("GITHUB_API_URL")
        or _get_tool_section().get("github_api_url")
        or DEFAULT_GITHUB_API_URL
    ).rstrip("/")


def get_pypistats_url() -> str:
    """Base URL of the pypistats.org download statistics API."""
    return (
        _get_env("PYPISTATS_URL")
        or _get_tool_section().get("pypistats_url")
        or DEFAULT_PYPISTATS_URL
    ).rstrip("/")


def reset_overrides() -> None:
    """Forget every value set through the ``set_*`` functions."""
    global VERIFY_SSL, _VERBOSE, _MAX_DEPTH, _FETCH_TIMEOUT, _MAX_CONCURRENCY
    VERIFY_SSL = True
    _VERBOSE = None
    _MAX_DEPTH = None
    _FETCH_TIMEOUT = None
    _MAX_CONCURRENCY = None
