"""License compliance risk dimension."""

from dep_risk_graph.licenses import LicenseService
from dep_risk_graph.risk.base import (
    ComplianceSignals,
    DimensionSpec,
    RiskContext,
    clamp,
)

_SERVICE = LicenseService()


def score_license(raw_license: str, service: LicenseService = _SERVICE) -> ComplianceSignals:
    """
    Score a license from its capabilities and obligations.

    0 means everything is allowed without obligations; 10 means use itself
    is not granted.
    """
    info = service.info(raw_license)
    caps = info.capabilities
    obligations = info.obligations
    has_obligations = obligations.any()
    concerns: list[str] = []

    can_use = caps.use is True
    can_modify = caps.modify is True
    can_sell = caps.sell is True
    can_saas = caps.saas is True

    if not can_use:
        score = 10.0
        concerns.append("Usage not granted or unclear")
    elif not (can_modify or can_sell or can_saas):
        score = 8.0 if has_obligations else 6.0
        concerns.append("Use only: no modification, sale or SaaS")
    elif can_modify and not can_sell and not can_saas:
        score = 5.0 if has_obligations else 4.0
        concerns.append("Modification allowed but no sale or SaaS")
    elif can_modify and can_sell and not can_saas:
        score = 3.0 if has_obligations else 2.0
        concerns.append("Sale allowed but no SaaS")
    elif can_modify and can_sell and can_saas:
        score = 2.0 if has_obligations else 0.0
        if has_obligations:
            concerns.append("All actions allowed with obligations")
    else:
        score = 5.0
        concerns.append("Partial restrictions, review recommended")

    if obligations.network_copyleft:
        score = max(score, 7.0)
        concerns.append("Network copyleft: source disclosure required even for SaaS")

    return ComplianceSignals(
        license=info.spdx,
        category=info.category,
        score=clamp(score),
        concerns=concerns,
    )


def score_compliance(context: RiskContext) -> ComplianceSignals | None:
    """Returns None when the registry declares no license at all."""
    metadata = context.metadata
    if metadata is None or not metadata.license:
        return None
    return score_license(metadata.license)


DIMENSION = DimensionSpec(
    name="compliance",
    scorer=score_compliance,
)
