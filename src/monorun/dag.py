# dag.py
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from .errors import CyclicDependency
from .model import Manifest


def build_graph(manifests: Mapping[str, Manifest]) -> Dict[str, List[str]]:
    """
    Build the workspace dependency graph.

    For every package: (dependencies | devDependencies) & known package names,
    sorted. External dependencies are dropped.
    """
    known = set(manifests)
    graph: Dict[str, List[str]] = {}
    for name, manifest in manifests.items():
        declared = set(manifest.dependencies) | set(manifest.dev_dependencies)
        graph[name] = sorted(declared & known)
    return graph


def topo_levels(graph: Mapping[str, Iterable[str]]) -> List[List[str]]:
    """
    Convert the graph into topological "levels" (layers).
    Every package in a level only depends on packages of earlier levels,
    so each level can run in parallel.

    Raises CyclicDependency with the unresolved remainder; never returns a
    partial result.
    """
    remaining = {name: set(deps) for name, deps in graph.items()}  # copy (we mutate it)
    levels: List[List[str]] = []

    while True:
        level = sorted(name for name, deps in remaining.items() if not deps)
        if not level:
            break

        levels.append(level)
        for name in level:
            del remaining[name]
        for deps in remaining.values():
            deps.difference_update(level)

    if remaining:
        raise CyclicDependency({name: sorted(deps) for name, deps in sorted(remaining.items())})

    return levels
