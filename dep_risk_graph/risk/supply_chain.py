"""Supply chain risk dimension."""

from dep_risk_graph.risk.base import (
    DimensionSpec,
    RiskContext,
    SupplyChainSignals,
    clamp,
)

# Packages shipping compiled extensions or platform wheels.
NATIVE_PACKAGES = {
    "argon2-cffi",
    "bcrypt",
    "cffi",
    "cryptography",
    "frozenlist",
    "gevent",
    "greenlet",
    "grpcio",
    "lxml",
    "markupsafe",
    "multidict",
    "mysqlclient",
    "numpy",
    "opencv-python",
    "pandas",
    "pillow",
    "psycopg2",
    "pycrypto",
    "pymongo",
    "pyyaml",
    "pyzmq",
    "scipy",
    "tensorflow",
    "torch",
    "yarl",
}

# Packages whose source builds need a compiler toolchain.
TOOLCHAIN_PACKAGES = {
    "cryptography",
    "grpcio",
    "lxml",
    "mysqlclient",
    "opencv-python",
    "protobuf",
    "psycopg2",
    "scikit-learn",
    "scipy",
    "tensorflow",
    "torch",
}


def score_supply_chain(context: RiskContext) -> SupplyChainSignals | None:
    """
    Score exposure through the package's own dependencies.

    Returns None when the package's position in a tree is unknown.
    """
    stats = context.dependency_stats
    if stats is None:
        return None

    concerns: list[str] = []
    direct = stats.direct_dependencies

    if direct > 50:
        score = 6.0
        concerns.append(f"{direct} direct dependencies (large attack surface)")
    elif direct > 20:
        score = 4.0
        concerns.append(f"{direct} direct dependencies (high complexity)")
    elif direct > 10:
        score = 2.5
        concerns.append(f"{direct} direct dependencies (moderate complexity)")
    elif direct == 0:
        score = 0.5
        concerns.append("No direct dependencies")
    else:
        score = 1.0

    if stats.transitive_dependencies > 50:
        score += 1.0
        concerns.append(f"{stats.transitive_dependencies} transitive dependencies")

    name = context.package_name.lower()
    if name in NATIVE_PACKAGES:
        score += 1.5
        concerns.append("Native/compiled dependencies (wheels, OS packages)")
    if name in TOOLCHAIN_PACKAGES:
        score += 1.0
        concerns.append("Requires a compilation toolchain")

    repository = context.repository
    if (
        repository is not None
        and (repository.forks or 0) < 10
        and (repository.stars or 0) < 100
    ):
        score += 1.5
        concerns.append("Small contributor base (single point of failure)")

    return SupplyChainSignals(
        direct_dependencies=direct,
        transitive_dependencies=stats.transitive_dependencies,
        depth_level=stats.depth_level,
        score=clamp(score),
        concerns=concerns,
    )


DIMENSION = DimensionSpec(
    name="supply_chain",
    scorer=score_supply_chain,
)
