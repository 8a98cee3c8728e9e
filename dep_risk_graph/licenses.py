"""
License information service.

Maps raw license strings (SPDX ids, PyPI free-text, classifier names) to a
normalized record of capabilities and obligations.
"""

from typing import NamedTuple

from rich.console import Console

from dep_risk_graph.config import is_verbose_enabled

console = Console(stderr=True)


class LicenseCapabilities(NamedTuple):
    """What a license allows. None means ambiguous (read the LICENSE file)."""

    use: bool | None
    modify: bool | None
    sell: bool | None
    saas: bool | None


class LicenseObligations(NamedTuple):
    """What a license requires. None means ambiguous."""

    attribution: bool | None
    include_license: bool | None
    state_changes: bool | None
    disclose_source: bool | None
    share_alike: bool | None
    network_copyleft: bool | None

    def any(self) -> bool:
        return any(value is True for value in self)


class LicenseInfo(NamedTuple):
    """Normalized license record."""

    spdx: str
    category: str  # PERMISSIVE, PUBLIC_DOMAIN_LIKE, WEAK_COPYLEFT, STRONG_COPYLEFT, NETWORK_COPYLEFT, PROPRIETARY, UNKNOWN
    risk_level: str  # LOW, MEDIUM, HIGH, CRITICAL
    capabilities: LicenseCapabilities
    obligations: LicenseObligations
    notes: dict[str, str]


_ALL_ALLOWED = LicenseCapabilities(use=True, modify=True, sell=True, saas=True)
_PERMISSIVE_OBLIGATIONS = LicenseObligations(
    attribution=True,
    include_license=True,
    state_changes=False,
    disclose_source=False,
    share_alike=False,
    network_copyleft=False,
)
_NO_OBLIGATIONS = LicenseObligations(False, False, False, False, False, False)


def _permissive(spdx: str, en: str, fr: str, state_changes: bool = False) -> LicenseInfo:
    return LicenseInfo(
        spdx=spdx,
        category="PERMISSIVE",
        risk_level="LOW",
        capabilities=_ALL_ALLOWED,
        obligations=_PERMISSIVE_OBLIGATIONS._replace(state_changes=state_changes),
        notes={"en": en, "fr": fr},
    )


LICENSES: dict[str, LicenseInfo] = {
    "MIT": _permissive(
        "MIT",
        "Permissive. Keep the copyright notice.",
        "Permissive. Conserver la notice de copyright.",
    ),
    "Apache-2.0": _permissive(
        "Apache-2.0",
        "Permissive with an explicit patent grant. Modified files must say so.",
        "Permissive avec concession de brevets. Signaler les fichiers modifiés.",
        state_changes=True,
    ),
    "BSD-2-Clause": _permissive(
        "BSD-2-Clause",
        "Permissive. Keep the copyright notice.",
        "Permissive. Conserver la notice de copyright.",
    ),
    "BSD-3-Clause": _permissive(
        "BSD-3-Clause",
        "Permissive. No endorsement using the authors' names.",
        "Permissive. Pas de promotion avec le nom des auteurs.",
    ),
    "ISC": _permissive(
        "ISC",
        "Permissive, functionally equivalent to MIT.",
        "Permissive, équivalente à MIT.",
    ),
    "PSF-2.0": _permissive(
        "PSF-2.0",
        "Python Software Foundation license. Permissive.",
        "Licence de la Python Software Foundation. Permissive.",
        state_changes=True,
    ),
    "Unlicense": LicenseInfo(
        spdx="Unlicense",
        category="PUBLIC_DOMAIN_LIKE",
        risk_level="LOW",
        capabilities=_ALL_ALLOWED,
        obligations=_NO_OBLIGATIONS,
        notes={"en": "Public domain dedication.", "fr": "Dédié au domaine public."},
    ),
    "0BSD": LicenseInfo(
        spdx="0BSD",
        category="PUBLIC_DOMAIN_LIKE",
        risk_level="LOW",
        capabilities=_ALL_ALLOWED,
        obligations=_NO_OBLIGATIONS,
        notes={"en": "No conditions at all.", "fr": "Aucune condition."},
    ),
    "MPL-2.0": LicenseInfo(
        spdx="MPL-2.0",
        category="WEAK_COPYLEFT",
        risk_level="MEDIUM",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(
            attribution=True,
            include_license=True,
            state_changes=False,
            disclose_source=True,
            share_alike=True,
            network_copyleft=False,
        ),
        notes={
            "en": "File-level copyleft: modified MPL files stay MPL.",
            "fr": "Copyleft au niveau fichier : les fichiers MPL modifiés restent MPL.",
        },
    ),
    "LGPL-2.1": LicenseInfo(
        spdx="LGPL-2.1",
        category="WEAK_COPYLEFT",
        risk_level="MEDIUM",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(True, True, True, True, True, False),
        notes={
            "en": "Linking is allowed; changes to the library must be shared.",
            "fr": "Liaison autorisée ; les modifications de la bibliothèque doivent être partagées.",
        },
    ),
    "LGPL-3.0": LicenseInfo(
        spdx="LGPL-3.0",
        category="WEAK_COPYLEFT",
        risk_level="MEDIUM",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(True, True, True, True, True, False),
        notes={
            "en": "Linking is allowed; changes to the library must be shared.",
            "fr": "Liaison autorisée ; les modifications de la bibliothèque doivent être partagées.",
        },
    ),
    "GPL-2.0": LicenseInfo(
        spdx="GPL-2.0",
        category="STRONG_COPYLEFT",
        risk_level="HIGH",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(True, True, True, True, True, False),
        notes={
            "en": "Distributed derivatives must be GPL-2.0 with source.",
            "fr": "Les dérivés distribués doivent être GPL-2.0 avec les sources.",
        },
    ),
    "GPL-3.0": LicenseInfo(
        spdx="GPL-3.0",
        category="STRONG_COPYLEFT",
        risk_level="HIGH",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(True, True, True, True, True, False),
        notes={
            "en": "Distributed derivatives must be GPL-3.0 with source.",
            "fr": "Les dérivés distribués doivent être GPL-3.0 avec les sources.",
        },
    ),
    "AGPL-3.0": LicenseInfo(
        spdx="AGPL-3.0",
        category="NETWORK_COPYLEFT",
        risk_level="CRITICAL",
        capabilities=_ALL_ALLOWED,
        obligations=LicenseObligations(True, True, True, True, True, True),
        notes={
            "en": "Source must be offered even to users reached over a network.",
            "fr": "Les sources doivent être fournies même aux utilisateurs via le réseau.",
        },
    ),
    "Proprietary": LicenseInfo(
        spdx="Proprietary",
        category="PROPRIETARY",
        risk_level="CRITICAL",
        capabilities=LicenseCapabilities(use=None, modify=False, sell=False, saas=False),
        obligations=LicenseObligations(None, None, None, None, None, None),
        notes={
            "en": "Terms depend on the vendor agreement.",
            "fr": "Les conditions dépendent du contrat éditeur.",
        },
    ),
    "UNKNOWN": LicenseInfo(
        spdx="UNKNOWN",
        category="UNKNOWN",
        risk_level="HIGH",
        capabilities=LicenseCapabilities(None, None, None, None),
        obligations=LicenseObligations(None, None, None, None, None, None),
        notes={
            "en": "License not recognized. Review the LICENSE file.",
            "fr": "Licence non reconnue. Vérifier le fichier LICENSE.",
        },
    ),
}

ALIASES: dict[str, str] = {
    "mit license": "MIT",
    "the mit license": "MIT",
    "expat": "MIT",
    "apache": "Apache-2.0",
    "apache 2.0": "Apache-2.0",
    "apache-2": "Apache-2.0",
    "apache license 2.0": "Apache-2.0",
    "apache license, version 2.0": "Apache-2.0",
    "apache software license": "Apache-2.0",
    "bsd": "BSD-3-Clause",
    "bsd license": "BSD-3-Clause",
    "new bsd": "BSD-3-Clause",
    "bsd-3": "BSD-3-Clause",
    "simplified bsd": "BSD-2-Clause",
    "bsd-2": "BSD-2-Clause",
    "isc license": "ISC",
    "isc license (iscl)": "ISC",
    "psf": "PSF-2.0",
    "python software foundation license": "PSF-2.0",
    "the unlicense": "Unlicense",
    "mozilla public license 2.0": "MPL-2.0",
    "mozilla public license 2.0 (mpl 2.0)": "MPL-2.0",
    "mpl 2.0": "MPL-2.0",
    "lgpl": "LGPL-3.0",
    "lgplv3": "LGPL-3.0",
    "lgpl-3.0-only": "LGPL-3.0",
    "lgpl-3.0-or-later": "LGPL-3.0",
    "lgplv2": "LGPL-2.1",
    "lgpl-2.1-only": "LGPL-2.1",
    "lgpl-2.1-or-later": "LGPL-2.1",
    "gnu lesser general public license": "LGPL-3.0",
    "gpl": "GPL-3.0",
    "gplv2": "GPL-2.0",
    "gpl-2.0-only": "GPL-2.0",
    "gpl-2.0-or-later": "GPL-2.0",
    "gplv3": "GPL-3.0",
    "gpl-3.0-only": "GPL-3.0",
    "gpl-3.0-or-later": "GPL-3.0",
    "gnu general public license": "GPL-3.0",
    "gnu general public license v2": "GPL-2.0",
    "gnu general public license v3": "GPL-3.0",
    "agpl": "AGPL-3.0",
    "agplv3": "AGPL-3.0",
    "agpl-3.0-only": "AGPL-3.0",
    "agpl-3.0-or-later": "AGPL-3.0",
    "proprietary": "Proprietary",
    "commercial": "Proprietary",
    "closed source": "Proprietary",
}


class LicenseService:
    """Look up license capabilities and obligations."""

    def __init__(
        self,
        licenses: dict[str, LicenseInfo] | None = None,
        aliases: dict[str, str] | None = None,
    ):
        self.licenses = licenses if licenses is not None else LICENSES
        self.aliases = aliases if aliases is not None else ALIASES
        self._lower_spdx = {spdx.lower(): spdx for spdx in self.licenses}

    def normalize(self, raw_license: str | None) -> str:
        """Normalize a raw license string to an SPDX identifier or ``UNKNOWN``."""
        if not raw_license or not raw_license.strip():
            return "UNKNOWN"

        normalized = raw_license.strip()
        if normalized in self.licenses:
            return normalized

        lower = normalized.lower()
        if lower in self._lower_spdx:
            return self._lower_spdx[lower]
        if lower in self.aliases:
            return self.aliases[lower]

        if is_verbose_enabled():
            console.print(
                f"[dim]Unknown license: {raw_license!r} - treating as UNKNOWN[/dim]"
            )
        return "UNKNOWN"

    def info(self, raw_license: str | None) -> LicenseInfo:
        """Return the full record for a license, ``UNKNOWN`` when unrecognized."""
        return self.licenses.get(self.normalize(raw_license), self.licenses["UNKNOWN"])

    def note(self, raw_license: str | None, language: str = "en") -> str:
        notes = self.info(raw_license).notes
        return notes.get(language, notes["en"])
