"""
Circular object reference detection and breaking.

Objects that reference each other cannot all import each other eagerly. This module
finds the strongly connected components of the object reference graph and picks, per
component, a minimal set of edges whose targets are bound lazily instead. Choices are
deterministic: array edges are deferred before optional edges, required scalar edges
are never deferred, and among equally ranked edges the one with the smallest source
name stays deferred.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import TypeAlias

from ocsf_model_compiler.exceptions import CycleException
from ocsf_model_compiler.model import (
    CycleAnnotation,
    ReferenceEdge,
    ReferenceGraph,
    ResolvedEntity,
)

logger = logging.getLogger(__name__)

Edge: TypeAlias = tuple[str, str]


def build_reference_graph(objects: Mapping[str, ResolvedEntity]) -> ReferenceGraph:
    """Build the object-to-object reference graph of one schema version."""
    graph: ReferenceGraph = {}
    for name in sorted(objects):
        by_target: dict[str, list] = {}
        for attribute in objects[name].attributes.values():
            if attribute.object_type:
                by_target.setdefault(attribute.object_type, []).append(attribute)
        graph[name] = {
            target: ReferenceEdge(name, target, tuple(by_target[target]))
            for target in sorted(by_target)
        }
    return graph


def strongly_connected_components(
    nodes: Iterable[str], edges: Iterable[Edge]
) -> list[tuple[str, ...]]:
    """
    Tarjan's algorithm. Nodes and neighbors are visited in sorted order, so the
    result does not depend on input ordering. Each component is returned sorted.
    """
    successors: dict[str, list[str]] = {node: [] for node in nodes}
    for source, target in edges:
        successors.setdefault(source, []).append(target)
        successors.setdefault(target, [])
    for targets in successors.values():
        targets.sort()

    counter = 0
    indices: dict[str, int] = {}
    lowlinks: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    components: list[tuple[str, ...]] = []

    def connect(node: str) -> None:
        nonlocal counter
        indices[node] = counter
        lowlinks[node] = counter
        counter += 1
        stack.append(node)
        on_stack.add(node)

        for successor in successors[node]:
            if successor not in indices:
                connect(successor)
                lowlinks[node] = min(lowlinks[node], lowlinks[successor])
            elif successor in on_stack:
                lowlinks[node] = min(lowlinks[node], indices[successor])

        if lowlinks[node] == indices[node]:
            component = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == node:
                    break
            components.append(tuple(sorted(component)))

    for node in sorted(successors):
        if node not in indices:
            connect(node)
    return components


def _graph_edges(graph: ReferenceGraph) -> list[Edge]:
    return [(source, target) for source in graph for target in graph[source]]


def _is_acyclic(nodes: Iterable[str], edges: Iterable[Edge]) -> bool:
    """Kahn's algorithm on the given sub-graph."""
    in_degree = {node: 0 for node in nodes}
    successors: dict[str, list[str]] = {node: [] for node in in_degree}
    for source, target in edges:
        successors[source].append(target)
        in_degree[target] += 1

    ready = [node for node, degree in in_degree.items() if degree == 0]
    visited = 0
    while ready:
        node = ready.pop()
        visited += 1
        for successor in successors[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                ready.append(successor)
    return visited == len(in_degree)


def _is_cyclic_component(component: tuple[str, ...], edges: list[Edge]) -> bool:
    return len(component) > 1 or (component[0], component[0]) in edges


def find_cycles(
    graph: ReferenceGraph, deferred: Iterable[Edge] = ()
) -> list[tuple[str, ...]]:
    """Return the cycles (as strongly connected components) left after removing the
    deferred edges."""
    deferred = set(deferred)
    edges = [edge for edge in _graph_edges(graph) if edge not in deferred]
    return [
        component
        for component in strongly_connected_components(graph, edges)
        if _is_cyclic_component(component, edges)
    ]


def annotate_cycles(graph: ReferenceGraph) -> CycleAnnotation:
    all_edges = _graph_edges(graph)
    deferred: set[Edge] = set()
    components = []

    for component in strongly_connected_components(graph, all_edges):
        members = set(component)
        edges = [
            graph[source][target]
            for source in component
            for target in graph[source]
            if target in members
        ]
        if not edges:
            continue
        components.append(component)

        required = [(e.source, e.target) for e in edges if not e.is_deferrable]
        if not _is_acyclic(component, required):
            raise CycleException(
                "Circular reference through required attributes cannot be broken"
                f" between objects: {', '.join(component)}"
            )

        component_deferred = {(e.source, e.target) for e in edges if e.is_deferrable}
        # Restore the edges least suited to deferral first
        candidates = sorted(
            (e for e in edges if e.is_deferrable),
            key=lambda e: (e.rank, e.source, e.target),
            reverse=True,
        )
        for edge in candidates:
            trial = component_deferred - {(edge.source, edge.target)}
            eager = [
                (e.source, e.target)
                for e in edges
                if (e.source, e.target) not in trial
            ]
            if _is_acyclic(component, eager):
                component_deferred = trial

        logger.debug(
            "Circular references between %s: deferring %s",
            ", ".join(component),
            ", ".join(f"{s} -> {t}" for s, t in sorted(component_deferred)),
        )
        deferred.update(component_deferred)

    annotation = CycleAnnotation(
        deferred=frozenset(deferred), components=tuple(components)
    )
    # Every remaining cycle should have been broken above
    assert not find_cycles(graph, annotation.deferred), (
        "LOGIC BUG: cycles left after deferring edges"
    )
    logger.info(
        "Found %d circular reference groups; %d references will be bound lazily",
        len(components),
        len(deferred),
    )
    return annotation
