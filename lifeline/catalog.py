"""Read-only content catalog: nodes, rules, stat bounds and starting selectors."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from lifeline.expressions import STAT_KEYS
from lifeline.schema import validate_catalog

DEFAULT_CATALOG_PATH = "world/catalog.json"
DEFAULT_START_NODE = "DAY0_LOCATION"


@dataclass(frozen=True)
class Catalog:
    nodes: Mapping[str, Dict[str, Any]]
    bounds: Mapping[str, Tuple[float, float]]
    initial_values: Mapping[str, float]
    personas: Mapping[str, Dict[str, Any]]
    locations: Mapping[str, Dict[str, Any]]
    outcomes: List[Dict[str, Any]] = field(default_factory=list)
    literacy_rules: List[Dict[str, Any]] = field(default_factory=list)
    max_literacy_score: Optional[float] = None
    start_node: Optional[str] = None
    title: str = "Untitled"
    version: Optional[str] = None
    persona_info: Mapping[str, str] = field(default_factory=dict)
    location_info: Mapping[str, str] = field(default_factory=dict)

    def node(self, node_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not isinstance(node_id, str):
            return None
        return self.nodes.get(node_id)

    def node_type(self, node_id: Optional[str]) -> Optional[str]:
        node = self.node(node_id)
        return node.get("type") if node else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Catalog":
        system = data.get("system") or {}
        bounds: Dict[str, Tuple[float, float]] = {}
        for section in ("variables", "skills"):
            for key, rule in (system.get(section) or {}).items():
                if key in STAT_KEYS and isinstance(rule, Mapping):
                    bounds[key] = (rule["min"], rule["max"])
        initial = {
            key: value
            for key, value in (system.get("initial_values") or {}).items()
            if key in STAT_KEYS
        }
        scoring = data.get("literacy_scoring") or {}
        return cls(
            nodes=dict(data.get("nodes") or {}),
            bounds=bounds,
            initial_values=initial,
            personas=dict(data.get("personas") or {}),
            locations=dict(data.get("locations") or {}),
            outcomes=list(data.get("outcomes") or []),
            literacy_rules=list(scoring.get("rules") or []),
            max_literacy_score=scoring.get("max_score"),
            start_node=data.get("start_node"),
            title=data.get("title") or "Untitled",
            version=data.get("version"),
            persona_info=dict(data.get("persona_info") or {}),
            location_info=dict(data.get("location_info") or {}),
        )


def _raise_catalog_validation(errors):
    raise ValueError("Invalid catalog:\n- " + "\n- ".join(errors))


def parse_catalog(data: Any) -> Catalog:
    if not isinstance(data, dict):
        _raise_catalog_validation(["Catalog data must be a JSON object."])
    errors = validate_catalog(data)
    if errors:
        _raise_catalog_validation(errors)
    return Catalog.from_dict(data)


def load_catalog(path) -> Catalog:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return parse_catalog(data)


def resolve_catalog_path(path: Optional[str] = None) -> Path:
    if path:
        return Path(path)
    return Path(__file__).resolve().parent.parent / DEFAULT_CATALOG_PATH
