"""
Dependency resolver.

Walks a package's ``requires_dist`` graph depth-first from a root, building
a ``DependencyTree``. Resolution state (visited names, fetched metadata,
failure reasons) lives in a ``ResolutionContext`` that outlives a single
analysis:

* ``visited`` is marked before a package is fetched. A name already visited
  by an earlier analysis on the same context is skipped, including names
  whose fetch failed. Call ``reset()`` between unrelated analyses.
* ``cache`` holds successful fetches only and is never cleared by ``reset()``.
"""

import asyncio
from collections import deque
from typing import Awaitable, Callable

from rich.console import Console

from dep_risk_graph.config import (
    get_fetch_timeout,
    get_max_concurrency,
    get_max_depth,
    is_package_excluded,
    is_verbose_enabled,
)
from dep_risk_graph.models import DependencyNode, DependencyTree, Edge, FetchFailure
from dep_risk_graph.registry import PackageMetadata, PyPIRegistry, RegistryError
from dep_risk_graph.requirements import extract_dependency_names
from dep_risk_graph.risk.aggregator import RiskAggregator
from dep_risk_graph.risk.base import DependencyStats

console = Console(stderr=True)


class AnalysisCancelledError(Exception):
    """Raised when an analysis is cancelled through its cancel event."""

    def __init__(self, partial_tree: DependencyTree):
        super().__init__(f"Analysis of {partial_tree.root} cancelled")
        self.partial_tree = partial_tree


class ResolutionContext:
    """Mutable state shared by the analyses run against it."""

    def __init__(self):
        self.visited: set[str] = set()
        self.cache: dict[str, PackageMetadata] = {}
        self.failures: dict[str, FetchFailure] = {}
        self._in_flight: dict[str, asyncio.Future] = {}

    def reset(self) -> None:
        """Forget visited names. Cached metadata is kept."""
        self.visited.clear()

    def record_failure(self, name: str, failure: FetchFailure) -> None:
        self.failures[name] = failure

    async def fetch(
        self,
        name: str,
        fetcher: Callable[[str], Awaitable[PackageMetadata]],
    ) -> PackageMetadata:
        """
        Fetch metadata through the cache.

        Concurrent callers for the same name share one in-flight request.
        Only successful results are cached.
        """
        if name in self.cache:
            if is_verbose_enabled():
                console.print(f"[dim]Cache hit: {name}[/dim]")
            return self.cache[name]

        future = self._in_flight.get(name)
        if future is None:
            future = asyncio.ensure_future(fetcher(name))
            self._in_flight[name] = future
            future.add_done_callback(lambda _: self._in_flight.pop(name, None))

        metadata = await asyncio.shield(future)
        self.cache[name] = metadata
        self.failures.pop(name, None)
        return metadata


class _Analysis:
    """Per-call state of one ``analyze`` run."""

    def __init__(
        self,
        tree: DependencyTree,
        context: ResolutionContext,
        max_depth: int,
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
    ):
        self.tree = tree
        self.context = context
        self.max_depth = max_depth
        self.semaphore = semaphore
        self.cancel_event = cancel_event

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise AnalysisCancelledError(self.tree)


def compute_dependency_stats(tree: DependencyTree) -> dict[str, DependencyStats]:
    """
    Direct and transitive dependency counts for every node in a tree.

    Transitive counts only follow edges between nodes present in the tree.
    ``depth_level`` is the deepest discovery level reachable from the node,
    the node itself included.
    """
    adjacency: dict[str, list[str]] = {name: [] for name in tree.nodes}
    for edge in tree.edges:
        if edge.source in tree.nodes and edge.target in tree.nodes:
            adjacency[edge.source].append(edge.target)

    stats = {}
    for name, node in tree.nodes.items():
        seen = {name}
        queue = deque(adjacency[name])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(adjacency[current])
        stats[name] = DependencyStats(
            direct_dependencies=len(node.dependency_names),
            transitive_dependencies=len(seen) - 1,
            depth_level=max(tree.nodes[reached].level for reached in seen),
        )
    return stats


class DependencyResolver:
    """Build dependency trees from a registry."""

    def __init__(
        self,
        registry: PyPIRegistry | None = None,
        risk_aggregator: RiskAggregator | None = None,
        max_concurrency: int | None = None,
        fetch_timeout: float | None = None,
        context: ResolutionContext | None = None,
    ):
        """
        Args:
            registry: Source of package metadata.
            risk_aggregator: Scores nodes once the tree is built. Without one
                nodes carry no risk data.
            max_concurrency: Number of sibling fetches allowed in flight.
                1 keeps a strictly sequential walk.
            fetch_timeout: Seconds allowed per registry fetch.
            context: Resolution state to use by default.
        """
        self.registry = registry or PyPIRegistry()
        self.risk_aggregator = risk_aggregator
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None else get_max_concurrency()
        )
        self.fetch_timeout = (
            fetch_timeout if fetch_timeout is not None else get_fetch_timeout()
        )
        self.context = context or ResolutionContext()

        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

    def reset(self) -> None:
        self.context.reset()

    async def analyze(
        self,
        root_name: str,
        max_depth: int | None = None,
        context: ResolutionContext | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DependencyTree:
        """
        Resolve the dependency tree of a package.

        Args:
            root_name: Package to start from (level 0).
            max_depth: Deepest level that becomes a node. Defaults to the
                configured max depth.
            context: Resolution state for this call. Defaults to the
                resolver's own context.
            cancel_event: When set, the walk stops at the next fetch.

        Returns:
            DependencyTree. Packages that failed to resolve are absent from
            ``nodes`` and listed in ``failures``.

        Raises:
            AnalysisCancelledError: If cancel_event was set. The exception
                carries the partial tree.
        """
        depth = get_max_depth() if max_depth is None else max_depth
        if depth < 0:
            raise ValueError("max_depth must be non-negative")

        analysis = _Analysis(
            tree=DependencyTree.empty(root_name),
            context=context or self.context,
            max_depth=depth,
            semaphore=asyncio.Semaphore(self.max_concurrency),
            cancel_event=cancel_event,
        )
        await self._resolve(root_name, 0, analysis)

        if self.risk_aggregator is not None:
            await self._score_nodes(analysis)

        tree = analysis.tree
        if is_verbose_enabled():
            console.print(
                f"[dim]Resolved {len(tree.nodes)} packages from {root_name} "
                f"({len(tree.failures)} failed)[/dim]"
            )
        return tree

    async def _fetch(self, name: str, analysis: _Analysis) -> PackageMetadata:
        async def fetch_with_timeout(package_name: str) -> PackageMetadata:
            return await asyncio.wait_for(
                self.registry.fetch(package_name), timeout=self.fetch_timeout
            )

        async with analysis.semaphore:
            return await analysis.context.fetch(name, fetch_with_timeout)

    def _omit(self, name: str, failure: FetchFailure, analysis: _Analysis) -> None:
        analysis.tree.failures[name] = failure
        analysis.context.record_failure(name, failure)
        if is_verbose_enabled():
            console.print(f"[dim]Skipping {name} ({failure.kind}): {failure.message}[/dim]")

    async def _resolve(self, name: str, level: int, analysis: _Analysis) -> None:
        if level > analysis.max_depth:
            return
        context = analysis.context
        if name in context.visited:
            return
        analysis.check_cancelled()
        context.visited.add(name)

        if is_package_excluded(name):
            if is_verbose_enabled():
                console.print(f"[dim]Excluded: {name}[/dim]")
            return

        try:
            metadata = await self._fetch(name, analysis)
        except RegistryError as e:
            self._omit(name, FetchFailure(e.kind, str(e)), analysis)
            return
        except TimeoutError:
            self._omit(
                name,
                FetchFailure("timeout", f"No response within {self.fetch_timeout}s"),
                analysis,
            )
            return

        analysis.check_cancelled()
        dependency_names = extract_dependency_names(metadata.dependency_specifiers)
        analysis.tree.nodes[name] = DependencyNode(
            name=name,
            version=metadata.version,
            level=level,
            dependency_names=dependency_names,
            license=metadata.license,
        )

        if self.max_concurrency == 1:
            for dependency in dependency_names:
                analysis.tree.edges.append(Edge(name, dependency))
                await self._resolve(dependency, level + 1, analysis)
            return

        for dependency in dependency_names:
            analysis.tree.edges.append(Edge(name, dependency))
        tasks = [
            asyncio.ensure_future(self._resolve(dependency, level + 1, analysis))
            for dependency in dependency_names
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def _score_nodes(self, analysis: _Analysis) -> None:
        tree = analysis.tree
        stats = compute_dependency_stats(tree)

        async def score_node(name: str) -> None:
            node = tree.nodes[name]
            try:
                async with analysis.semaphore:
                    assessment = await self.risk_aggregator.score(
                        name,
                        metadata=analysis.context.cache.get(name),
                        dependency_stats=stats[name],
                    )
            except Exception as e:
                console.print(f"[yellow]Risk scoring failed for {name}: {e}[/yellow]")
                return
            security = assessment.breakdown.security
            tree.nodes[name] = node._replace(
                has_cve=security is not None and security.known_vulnerabilities,
                risk_score=assessment.risk_score,
                risk_breakdown=assessment.breakdown,
            )

        await asyncio.gather(*(score_node(name) for name in list(tree.nodes)))
