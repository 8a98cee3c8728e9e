"""
dep-risk-graph: dependency tree resolution and multi-dimensional risk
scoring for PyPI packages.
"""

__version__ = "0.1.0"
