import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CATALOG_PATH = REPO_ROOT / "world" / "catalog.json"

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lifeline.catalog import DEFAULT_START_NODE
from lifeline.catalog_schema import node_successors


def load_catalog_data(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def build_graph(catalog: dict) -> tuple:
    """Return the adjacency map plus messages for edges that point nowhere."""
    nodes = catalog.get("nodes", {})
    graph = {node_id: [] for node_id in nodes}
    missing_targets = []
    for node_id, node in nodes.items():
        if not isinstance(node, dict):
            continue
        for target in node_successors(node):
            graph[node_id].append(target)
            if target not in nodes:
                missing_targets.append(f"{node_id} -> missing node {target}")
    return graph, missing_targets


def traverse_from(start_node: str, graph: dict) -> set:
    if start_node not in graph:
        return set()
    visited = set()
    stack = [start_node]
    while stack:
        current = stack.pop()
        if current in visited or current not in graph:
            continue
        visited.add(current)
        stack.extend(graph.get(current, []))
    return visited


def main() -> None:
    catalog_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CATALOG_PATH
    catalog = load_catalog_data(catalog_path)
    graph, missing_targets = build_graph(catalog)
    start_node = catalog.get("start_node") or DEFAULT_START_NODE

    reached = traverse_from(start_node, graph)
    unreachable = sorted(set(graph.keys()) - reached)

    print(f"Catalog file: {catalog_path}")
    print(f"Start node: {start_node}")
    print(f"Total nodes: {len(graph)}")
    print(f"Reachable nodes: {len(reached)}")
    for message in missing_targets:
        print(f"Missing target: {message}")
    if unreachable:
        print("Unreachable nodes:")
        for node_id in unreachable:
            print(f"  - {node_id}")
    else:
        print("All nodes reachable from the start node.")


if __name__ == "__main__":
    main()
