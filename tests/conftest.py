import copy
import json
from pathlib import Path

import pytest

from lifeline.catalog import Catalog, parse_catalog

BASE_CATALOG = {
    "title": "Test",
    "start_node": "start",
    "system": {
        "variables": {
            "S": {"min": 0, "max": 10},
            "R": {"min": 0, "max": 10},
            "M": {"min": -5, "max": 10},
            "SC": {"min": 0, "max": 10},
            "HR": {"min": 0, "max": 5},
        },
        "skills": {
            "SA": {"min": 0, "max": 10},
            "FM": {"min": 0, "max": 10},
            "LA": {"min": 0, "max": 10},
        },
        "initial_values": {
            "S": 5, "R": 5, "M": 3, "SC": 3, "HR": 0, "SA": 0, "FM": 0, "LA": 0,
        },
    },
    "personas": {"Student": {"delta": {"M": 1}}, "Elder": {"delta": {"SC": 2}}},
    "locations": {"Coastal": {"delta": {"S": -1}}, "Hill": {}},
    "outcomes": [{"condition": "true", "priority": 1, "result": "Done"}],
    "literacy_scoring": {"max_score": 5, "rules": []},
}


def catalog_dict(nodes: dict, **overrides) -> dict:
    data = copy.deepcopy(BASE_CATALOG)
    data["nodes"] = copy.deepcopy(nodes)
    data.update(copy.deepcopy(overrides))
    return data


@pytest.fixture
def catalog_data():
    return catalog_dict


@pytest.fixture
def make_catalog():
    """Build a validated Catalog; pass validate=False for deliberately broken graphs."""

    def build(nodes: dict, *, validate: bool = True, **overrides) -> Catalog:
        data = catalog_dict(nodes, **overrides)
        if validate:
            return parse_catalog(data)
        return Catalog.from_dict(data)

    return build


@pytest.fixture
def write_catalog(tmp_path: Path):
    def write(data: dict) -> Path:
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(data))
        return path

    return write
