"""Static router loop analysis for Lifeline catalogs."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Set

from lifeline.catalog_schema import ROUTER_TYPES, node_successors, path


def router_graph(nodes: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Edges between router nodes only; these are followed without player input."""
    graph: Dict[str, List[str]] = {}
    for node_id, node in nodes.items():
        if not isinstance(node, Mapping) or node.get("type") not in ROUTER_TYPES:
            continue
        graph[node_id] = [
            target
            for target in node_successors(node)
            if isinstance(nodes.get(target), Mapping) and nodes[target].get("type") in ROUTER_TYPES
        ]
    return graph


def find_router_cycles(nodes: Mapping[str, Any]) -> List[List[str]]:
    graph = router_graph(nodes)
    cycles: List[List[str]] = []
    seen_cycles: Set[frozenset] = set()
    done: Set[str] = set()

    def visit(node_id: str, stack: List[str], on_stack: Set[str]) -> None:
        stack.append(node_id)
        on_stack.add(node_id)
        for target in graph.get(node_id, []):
            if target in on_stack:
                cycle = stack[stack.index(target):]
                key = frozenset(cycle)
                if key not in seen_cycles:
                    seen_cycles.add(key)
                    cycles.append(cycle + [target])
            elif target not in done:
                visit(target, stack, on_stack)
        stack.pop()
        on_stack.discard(node_id)
        done.add(node_id)

    for node_id in sorted(graph):
        if node_id not in done:
            visit(node_id, [], set())
    return cycles


def analyze_router_cycles(catalog: Mapping[str, Any]) -> List[str]:
    nodes = catalog.get("nodes")
    if not isinstance(nodes, Mapping):
        return []
    warnings = []
    for cycle in find_router_cycles(nodes):
        warnings.append(
            f"{path('nodes', cycle[0])}: routers can loop without player input: "
            f"{' -> '.join(cycle)}."
        )
    return warnings
