"""
Requirement specifier parsing.

PyPI exposes dependencies as PEP 508 strings in ``requires_dist``, e.g.
``"idna (<4,>=2.5)"`` or ``"PySocks!=1.5.7,>=1.5.6; extra == 'socks'"``.
Only the leading distribution name is needed to walk the graph.
"""

import re

_NAME_PATTERN = re.compile(r"^([a-zA-Z0-9\-_.]+)")
_EXTRA_MARKER_PATTERN = re.compile(r"\bextra\s*==")


def is_optional_specifier(specifier: str) -> bool:
    """Check whether a specifier is only installed with an extra."""
    return bool(_EXTRA_MARKER_PATTERN.search(specifier))


def extract_package_name(specifier: str) -> str | None:
    """
    Extract the distribution name from a requirement specifier.

    Args:
        specifier: Raw requirement string.

    Returns:
        The leading package-name token, or None if the string has none.
    """
    if not isinstance(specifier, str):
        return None
    match = _NAME_PATTERN.match(specifier.strip())
    if not match:
        return None
    return match.group(1)


def extract_dependency_names(specifiers: list[str] | None) -> list[str]:
    """
    Extract the required dependency names of one package.

    Optional (extra-gated) specifiers are dropped, malformed ones are skipped
    individually, and names are deduplicated within this list only, keeping
    the first occurrence.

    Args:
        specifiers: The package's ``requires_dist`` entries.

    Returns:
        Dependency names in registry order.
    """
    names: list[str] = []
    seen: set[str] = set()
    for specifier in specifiers or []:
        name = extract_package_name(specifier)
        if name is None:
            continue
        if is_optional_specifier(specifier):
            continue
        if name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names
