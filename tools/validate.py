#!/usr/bin/env python3
"""Validate a Lifeline story catalog.

Schema errors fail the run (exit code 1). Router loops and nodes that cannot be
reached from the start node are reported as warnings.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CATALOG = REPO_ROOT / "world" / "catalog.json"

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lifeline.catalog import DEFAULT_START_NODE
from lifeline.catalog_schema import path
from lifeline.schema import validate_catalog
from tools.list_unreachable import build_graph, traverse_from
from tools.router_cycles import analyze_router_cycles


def load_json(catalog_path: Path) -> Any:
    with catalog_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def unreachable_warnings(catalog: Mapping[str, Any]) -> List[str]:
    graph, _ = build_graph(catalog)
    start_node = catalog.get("start_node") or DEFAULT_START_NODE
    reached = traverse_from(start_node, graph)
    return [
        f"{path('nodes', node_id)}: not reachable from start node '{start_node}'."
        for node_id in sorted(set(graph) - reached)
    ]


def collect_warnings(catalog: Mapping[str, Any]) -> Dict[str, List[str]]:
    return {
        "Router loop warnings": analyze_router_cycles(catalog),
        "Unreachable node warnings": unreachable_warnings(catalog),
    }


def check_catalog(catalog: Any) -> Tuple[List[str], Dict[str, List[str]]]:
    """Return (errors, warnings by heading); warnings are skipped when errors exist."""
    if not isinstance(catalog, dict):
        return ["catalog must be a JSON object."], {}
    errors = validate_catalog(catalog)
    if errors:
        return errors, {}
    return [], collect_warnings(catalog)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate Lifeline catalog content.")
    parser.add_argument(
        "catalog_path",
        nargs="?",
        default=str(DEFAULT_CATALOG),
        help="Path to the catalog JSON file.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv[1:])
    catalog_path = Path(args.catalog_path).resolve()
    try:
        catalog = load_json(catalog_path)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Failed to read JSON from {catalog_path}: {exc}")
        return 1

    errors, warnings = check_catalog(catalog)
    if errors:
        print(f"Validation failed for {catalog_path} (path: message):")
        for err in errors:
            print(f" - {err}")
        return 1

    for heading, messages in warnings.items():
        if not messages:
            continue
        print(f"{heading} (path: message):")
        for message in messages:
            print(f" - {message}")

    print(f"Validation passed for {catalog_path}.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
