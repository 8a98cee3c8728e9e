"""
PyPI registry client.

Fetches the JSON metadata of a single package and normalizes the fields the
analysis needs: latest version, license, dependency specifiers, last release
date, source repository URL and maintainers. Monthly download counts come
from pypistats.org.
"""

import re
from datetime import datetime, timezone
from typing import Any, NamedTuple

import httpx
from rich.console import Console

from dep_risk_graph.config import (
    get_pypistats_url,
    get_registry_url,
    is_verbose_enabled,
)
from dep_risk_graph.http_client import _get_async_http_client

console = Console(stderr=True)

_VALID_NAME = re.compile(r"^[a-zA-Z0-9\-_.]+$")

LICENSE_CLASSIFIERS = {
    "License :: OSI Approved :: Apache Software License": "Apache-2.0",
    "License :: OSI Approved :: MIT License": "MIT",
    "License :: OSI Approved :: GNU General Public License v2 (GPLv2)": "GPL-2.0",
    "License :: OSI Approved :: GNU General Public License v3 (GPLv3)": "GPL-3.0",
    "License :: OSI Approved :: GNU General Public License (GPL)": "GPL",
    "License :: OSI Approved :: BSD License": "BSD",
    "License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)": "LGPL-3.0",
    "License :: OSI Approved :: ISC License (ISCL)": "ISC",
    "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)": "MPL-2.0",
    "License :: OSI Approved :: Python Software Foundation License": "PSF-2.0",
}

REPOSITORY_URL_KEYS = [
    "Repository",
    "Source",
    "Source Code",
    "Homepage",
    "repository",
    "source",
    "Code",
    "GitHub",
    "github",
]


class RegistryError(RuntimeError):
    """Registry request failed.

    ``kind`` is one of "network", "timeout", "invalid" or "not_found".
    """

    def __init__(self, message: str, kind: str = "network"):
        super().__init__(message)
        self.kind = kind


class PackageNotFoundError(RegistryError, LookupError):
    """The registry has no package with this name."""

    def __init__(self, package_name: str):
        super().__init__(f"Package not found: {package_name}", kind="not_found")
        self.package_name = package_name


class PackageMetadata(NamedTuple):
    """Normalized registry metadata for the latest release of a package."""

    name: str
    version: str
    dependency_specifiers: list[str]
    license: str | None = None
    release_date: datetime | None = None
    repository_url: str | None = None
    maintainers: list[str] = []
    summary: str = ""


def is_valid_package_name(name: str) -> bool:
    return bool(_VALID_NAME.match(name)) and len(name) <= 100


def extract_license(info: dict[str, Any]) -> str | None:
    """
    Extract a license string from PyPI ``info``.

    Priority: license_expression (SPDX) > license > classifiers.
    """
    expression = info.get("license_expression")
    if isinstance(expression, str) and expression.strip():
        return expression.strip()

    license_field = info.get("license")
    # Some packages paste the whole license text here; keep the first line.
    if isinstance(license_field, str) and license_field.strip():
        return license_field.strip().splitlines()[0]

    classifiers = info.get("classifiers") or []
    for classifier, spdx in LICENSE_CLASSIFIERS.items():
        if classifier in classifiers:
            return spdx

    for classifier in classifiers:
        if classifier.startswith("License :: OSI Approved :: "):
            return classifier.split(" :: ")[-1]

    return None


def extract_repository_url(info: dict[str, Any]) -> str | None:
    """Find a GitHub repository URL in ``home_page`` or ``project_urls``."""
    home_page = info.get("home_page")
    if isinstance(home_page, str) and "github.com" in home_page:
        return home_page

    project_urls = info.get("project_urls") or {}
    for key in REPOSITORY_URL_KEYS:
        url = project_urls.get(key)
        if isinstance(url, str) and "github.com" in url:
            return url

    for url in project_urls.values():
        if isinstance(url, str) and "github.com" in url:
            return url

    return None


def extract_maintainers(*fields: str | None) -> list[str]:
    """
    Extract maintainer names from author/maintainer fields.

    Email fields have the form ``"Name <email>, Name <email>"``.
    """
    maintainers: list[str] = []
    for field in fields:
        if not field:
            continue
        for part in field.split(","):
            part = part.strip()
            if not part:
                continue
            match = re.match(r"^(.+?)\s*<", part)
            if match:
                name = match.group(1).strip()
            elif "@" in part:
                # Bare address, no display name.
                continue
            else:
                name = part
            name = name.strip('"')
            if name and name not in maintainers:
                maintainers.append(name)
    return maintainers


def _parse_upload_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_release_date(data: dict[str, Any], version: str) -> datetime | None:
    """Upload time of the given version's first file, if the registry has one."""
    releases = data.get("releases")
    files = releases.get(version) if isinstance(releases, dict) else None
    files = files or data.get("urls") or []
    if not isinstance(files, list):
        return None
    for file_info in files:
        if not isinstance(file_info, dict):
            continue
        uploaded = _parse_upload_time(
            file_info.get("upload_time_iso_8601") or file_info.get("upload_time")
        )
        if uploaded is not None:
            return uploaded
    return None


def parse_package_metadata(package_name: str, data: Any) -> PackageMetadata:
    """
    Normalize a PyPI JSON document.

    Raises:
        RegistryError: If the document is not an object with an ``info``
            section, or a field has an unexpected type.
    """
    info = data.get("info") if isinstance(data, dict) else None
    if not isinstance(info, dict):
        raise RegistryError(
            f"Malformed registry response for {package_name}", kind="invalid"
        )

    try:
        version = str(info.get("version") or "unknown")
        requires_dist = info.get("requires_dist") or []
        return PackageMetadata(
            name=info.get("name") or package_name,
            version=version,
            dependency_specifiers=[
                spec for spec in requires_dist if isinstance(spec, str)
            ],
            license=extract_license(info),
            release_date=extract_release_date(data, version),
            repository_url=extract_repository_url(info),
            maintainers=extract_maintainers(
                info.get("author_email"),
                info.get("maintainer_email"),
            )
            or extract_maintainers(info.get("author"), info.get("maintainer")),
            summary=info.get("summary") or "",
        )
    except (AttributeError, TypeError) as e:
        raise RegistryError(
            f"Malformed registry response for {package_name}: {e}", kind="invalid"
        ) from e


class PyPIRegistry:
    """Registry client for the PyPI JSON API."""

    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or get_registry_url()).rstrip("/")

    async def fetch(self, package_name: str) -> PackageMetadata:
        """
        Fetch metadata for one package.

        Args:
            package_name: Name of the package.

        Returns:
            Normalized PackageMetadata.

        Raises:
            PackageNotFoundError: If PyPI returns 404.
            RegistryError: On invalid names, network errors, timeouts,
                non-404 HTTP errors or malformed responses.
        """
        if not is_valid_package_name(package_name):
            raise RegistryError(f"Invalid package name: {package_name}", kind="invalid")

        url = f"{self.base_url}/{package_name}/json"
        if is_verbose_enabled():
            console.print(f"[dim]Fetching {url}[/dim]")

        client = await _get_async_http_client()
        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise RegistryError(f"Timed out fetching {package_name}: {e}", kind="timeout") from e
        except httpx.RequestError as e:
            raise RegistryError(f"Request for {package_name} failed: {e}") from e

        if response.status_code == 404:
            raise PackageNotFoundError(package_name)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"PyPI API error for {package_name}: {response.status_code}"
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise RegistryError(
                f"Invalid JSON from registry for {package_name}", kind="invalid"
            ) from e

        return parse_package_metadata(package_name, data)


class PyPIStatsClient:
    """Download counts from pypistats.org."""

    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or get_pypistats_url()).rstrip("/")

    async def monthly_downloads(self, package_name: str) -> int | None:
        """
        Downloads of a package over the last month.

        Returns None when pypistats has no data for the package.

        Raises:
            httpx.HTTPError: On network errors and unexpected HTTP errors.
        """
        client = await _get_async_http_client()
        response = await client.get(
            f"{self.base_url}/packages/{package_name.lower()}/recent",
            params={"period": "month"},
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()

        data = response.json()
        stats = data.get("data") if isinstance(data, dict) else None
        last_month = stats.get("last_month") if isinstance(stats, dict) else None
        if isinstance(last_month, (int, float)) and last_month >= 0:
            return int(last_month)
        return None
