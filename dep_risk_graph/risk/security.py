"""Security risk dimension."""

from dep_risk_graph.risk.base import (
    DimensionSpec,
    RiskContext,
    SecuritySignals,
    clamp,
)

# Advisories are not matched against fixed versions, so every known
# advisory is assumed to apply.
APPLICABILITY_SCORE = 8.0


def _severity_score(cve_count: int, critical_count: int) -> tuple[float, str | None]:
    if critical_count >= 10:
        return 10.0, f"CRITICAL: {critical_count} critical vulnerabilities"
    if critical_count >= 5:
        return 9.0, f"{critical_count} critical vulnerabilities"
    if critical_count >= 1:
        return 8.0, f"{critical_count} critical vulnerabilit{'ies' if critical_count > 1 else 'y'}"
    if cve_count >= 50:
        return 7.0, f"{cve_count} vulnerabilities (high severity likely)"
    if cve_count >= 20:
        return 5.0, f"{cve_count} vulnerabilities detected"
    if cve_count >= 10:
        return 4.0, f"{cve_count} vulnerabilities"
    if cve_count >= 5:
        return 3.0, f"{cve_count} vulnerabilities"
    if cve_count > 0:
        return 2.0, f"{cve_count} minor vulnerabilit{'ies' if cve_count > 1 else 'y'}"
    return 0.0, None


def score_security(context: RiskContext) -> SecuritySignals | None:
    """
    Score vulnerability exposure.

    The score blends severity (60%) and applicability (40%) on a 0-10 scale.
    Returns None when the vulnerability lookup was unavailable.
    """
    vulnerabilities = context.vulnerabilities
    if vulnerabilities is None:
        return None

    cve_count = len(vulnerabilities)
    critical_count = sum(1 for vuln in vulnerabilities if vuln.is_critical)

    concerns = []
    severity, concern = _severity_score(cve_count, critical_count)
    if concern:
        concerns.append(concern)

    applicability = APPLICABILITY_SCORE if cve_count > 0 else 0.0
    if cve_count > 0:
        concerns.append("Affected versions not verified (assumed applicable)")

    score = clamp(round(severity * 0.6 + applicability * 0.4, 1))
    return SecuritySignals(
        cve_count=cve_count,
        critical_cve_count=critical_count,
        known_vulnerabilities=cve_count > 0,
        score=score,
        vulnerability_ids=[vuln.id for vuln in vulnerabilities],
        concerns=concerns,
    )


DIMENSION = DimensionSpec(
    name="security",
    scorer=score_security,
    error_log="[yellow]Security scoring incomplete for {package}: {error}[/yellow]",
)
