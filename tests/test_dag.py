"""Dependency graph and layering tests."""

from __future__ import annotations

import random

import pytest

from monorun.dag import build_graph, topo_levels
from monorun.errors import CyclicDependency
from monorun.model import Manifest


def _index(levels):
    return {name: idx for idx, level in enumerate(levels) for name in level}


def test_fan_out_from_single_root():
    levels = topo_levels({"A": [], "B": ["A"], "C": ["A"]})
    assert len(levels) == 2
    assert levels[0] == ["A"]
    assert set(levels[1]) == {"B", "C"}


def test_independent_packages_land_in_layer_zero():
    graph = {"solo": [], "a": [], "b": ["a"], "c": ["b"], "d": ["c"]}
    levels = topo_levels(graph)
    assert "solo" in levels[0]
    assert levels == [["a", "solo"], ["b"], ["c"], ["d"]]


def test_diamond():
    levels = topo_levels({"app": ["ui", "api"], "ui": ["core"], "api": ["core"], "core": []})
    assert levels == [["core"], ["api", "ui"], ["app"]]


def test_empty_graph():
    assert topo_levels({}) == []


def test_two_node_cycle_fails_without_partial_result():
    with pytest.raises(CyclicDependency) as exc:
        topo_levels({"A": ["B"], "B": ["A"]})
    assert exc.value.remaining == {"A": ["B"], "B": ["A"]}
    assert "Circular dependency detected" in str(exc.value)


def test_cycle_behind_resolvable_packages_reports_only_remainder():
    graph = {"base": [], "x": ["base", "y"], "y": ["x"], "leaf": ["base"]}
    with pytest.raises(CyclicDependency) as exc:
        topo_levels(graph)
    assert exc.value.remaining == {"x": ["y"], "y": ["x"]}


def test_self_dependency_is_a_cycle():
    with pytest.raises(CyclicDependency):
        topo_levels({"a": ["a"]})


def test_input_graph_is_not_mutated():
    graph = {"a": [], "b": ["a"]}
    topo_levels(graph)
    assert graph == {"a": [], "b": ["a"]}


def test_random_acyclic_graphs_layer_every_package_once_in_order():
    rng = random.Random(1234)
    for _ in range(50):
        names = [f"p{i}" for i in range(rng.randint(1, 25))]
        # edges only point to earlier names, so the graph is acyclic
        graph = {
            name: rng.sample(names[:i], rng.randint(0, min(i, 4)))
            for i, name in enumerate(names)
        }
        levels = topo_levels(graph)

        flat = [n for level in levels for n in level]
        assert sorted(flat) == sorted(names)
        assert len(flat) == len(set(flat))

        idx = _index(levels)
        for name, deps in graph.items():
            for dep in deps:
                assert idx[dep] < idx[name]


def test_build_graph_keeps_only_workspace_dependencies():
    manifests = {
        "app": Manifest(name="app", dependencies=("react", "ui"), dev_dependencies=("tooling", "vitest")),
        "ui": Manifest(name="ui", dependencies=("tooling",)),
        "tooling": Manifest(name="tooling"),
    }
    graph = build_graph(manifests)
    assert graph == {"app": ["tooling", "ui"], "ui": ["tooling"], "tooling": []}


def test_build_graph_dedupes_regular_and_dev():
    manifests = {
        "a": Manifest(name="a", dependencies=("b",), dev_dependencies=("b",)),
        "b": Manifest(name="b"),
    }
    assert build_graph(manifests)["a"] == ["b"]
