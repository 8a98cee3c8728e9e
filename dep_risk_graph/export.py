"""
Export dependency trees and graphs to files.
"""

import json
from pathlib import Path
from typing import Any

from dep_risk_graph.models import DependencyTree, GraphData

SUPPORTED_FORMATS = ("json",)


class UnsupportedFormatError(ValueError):
    """Raised when an export format is not supported."""

    def __init__(self, format_name: str):
        super().__init__(
            f"Unsupported export format: {format_name!r} "
            f"(supported: {', '.join(SUPPORTED_FORMATS)})"
        )
        self.format_name = format_name


def detect_format(path: Path) -> str:
    suffix = path.suffix.lower().lstrip(".")
    if suffix not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(suffix)
    return suffix


def serialize(data: DependencyTree | GraphData, format_name: str = "json") -> str:
    """Render a tree or graph in the requested format."""
    if format_name not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(format_name)
    payload: dict[str, Any] = data.to_dict()
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export(
    data: DependencyTree | GraphData, path: Path, format_name: str | None = None
) -> Path:
    """
    Write a tree or graph to ``path``.

    The format is taken from the file suffix unless given explicitly.

    Raises:
        UnsupportedFormatError: For anything other than JSON.
    """
    path = Path(path)
    content = serialize(data, format_name or detect_format(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
