"""
Vulnerability lookup backed by the OSV database (https://osv.dev).
"""

import re
from typing import Any, NamedTuple

from rich.console import Console

from dep_risk_graph.config import get_osv_url, is_verbose_enabled
from dep_risk_graph.http_client import _get_async_http_client

console = Console(stderr=True)

CRITICAL_THRESHOLD = 7.0
DEFAULT_SEVERITY = 5.0

SEVERITY_LABELS = {
    "CRITICAL": 9.0,
    "HIGH": 7.5,
    "MODERATE": 5.0,
    "MEDIUM": 5.0,
    "LOW": 3.0,
}


class Vulnerability(NamedTuple):
    """A known vulnerability affecting a package."""

    id: str
    severity: float
    description: str
    cvss_score: float | None = None
    published: str | None = None

    @property
    def is_critical(self) -> bool:
        return self.severity >= CRITICAL_THRESHOLD


def extract_cvss_score(vuln: dict[str, Any]) -> float | None:
    """Pull a numeric CVSS score out of an OSV ``severity`` entry."""
    for entry in vuln.get("severity") or []:
        if entry.get("type") not in ("CVSS_V3", "CVSS_V4"):
            continue
        score = entry.get("score")
        if isinstance(score, (int, float)):
            return float(score)
        if isinstance(score, str) and not score.startswith("CVSS:"):
            match = re.match(r"(\d+(?:\.\d+)?)", score)
            if match:
                return float(match.group(1))
    return None


def severity_of(vuln: dict[str, Any]) -> float:
    """
    Severity on a 0-10 scale.

    Uses the CVSS score when present, then the advisory database's label,
    then a moderate default.
    """
    cvss = extract_cvss_score(vuln)
    if cvss is not None:
        return cvss

    label = (vuln.get("database_specific") or {}).get("severity")
    if isinstance(label, str):
        return SEVERITY_LABELS.get(label.upper(), DEFAULT_SEVERITY)

    return DEFAULT_SEVERITY


def severity_level(score: float) -> str:
    """Map a 0-10 severity to a label."""
    if score == 0:
        return "none"
    if score < 4.0:
        return "low"
    if score < 7.0:
        return "medium"
    if score < 9.0:
        return "high"
    return "critical"


def parse_osv_response(data: dict[str, Any]) -> list[Vulnerability]:
    """Convert an OSV query response, highest severity first."""
    vulnerabilities = []
    for vuln in data.get("vulns") or []:
        vuln_id = vuln.get("id")
        if not vuln_id:
            continue
        vulnerabilities.append(
            Vulnerability(
                id=vuln_id,
                severity=severity_of(vuln),
                cvss_score=extract_cvss_score(vuln),
                description=vuln.get("summary")
                or vuln.get("details")
                or "No description available",
                published=vuln.get("published") or vuln.get("modified"),
            )
        )
    vulnerabilities.sort(key=lambda v: v.severity, reverse=True)
    return vulnerabilities


class OSVClient:
    """Vulnerability lookup for PyPI packages."""

    def __init__(self, base_url: str | None = None, ecosystem: str = "PyPI"):
        self.base_url = (base_url or get_osv_url()).rstrip("/")
        self.ecosystem = ecosystem

    async def lookup(
        self, package_name: str, version: str | None = None
    ) -> list[Vulnerability]:
        """
        List the vulnerabilities recorded for a package.

        Args:
            package_name: Package name.
            version: Restrict to advisories affecting this version.

        Returns:
            Vulnerabilities sorted by severity. Empty if OSV knows none.

        Raises:
            httpx.HTTPError: If OSV cannot be reached or answers with an error.
        """
        body: dict[str, Any] = {
            "package": {"name": package_name, "ecosystem": self.ecosystem}
        }
        if version and version != "unknown":
            body["version"] = version

        client = await _get_async_http_client()
        response = await client.post(f"{self.base_url}/query", json=body)
        if response.status_code in (400, 404):
            return []
        response.raise_for_status()

        vulnerabilities = parse_osv_response(response.json())
        if is_verbose_enabled():
            critical = sum(1 for v in vulnerabilities if v.is_critical)
            console.print(
                f"[dim]OSV: {len(vulnerabilities)} advisories for {package_name} "
                f"({critical} critical)[/dim]"
            )
        return vulnerabilities
