"""Machine-readable node specs for Lifeline catalogs."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from lifeline.expressions import STAT_KEYS, check_condition

NodeValidator = Callable[[Mapping[str, Any], str, Mapping[str, Any]], List[str]]


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f'{path_str}[{json.dumps(part)}]'
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def str_or_str_list(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, list) and value:
        return all(isinstance(item, str) and item.strip() != "" for item in value)
    return False


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_target(target: Any, context: str, field: str, nodes: Mapping[str, Any]) -> List[str]:
    if not is_non_empty_str(target):
        return [f"{context}: requires a non-empty string '{field}'."]
    if target not in nodes:
        return [f"{context}: '{field}' targets unknown node '{target}'."]
    return []


def validate_delta(delta: Any, context: str) -> List[str]:
    if delta is None:
        return []
    if not isinstance(delta, Mapping):
        return [f"{context}: delta must be an object mapping stats to numbers."]
    errors: List[str] = []
    for key, value in delta.items():
        if key not in STAT_KEYS:
            errors.append(f"{context}: delta uses unknown stat '{key}'.")
        elif not is_number(value):
            errors.append(f"{context}: delta for '{key}' must be a number.")
    return errors


def validate_probability(entries: Any, context: str) -> List[str]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        return [f"{context}: probability must be a list of entries."]
    errors: List[str] = []
    for idx, entry in enumerate(entries, start=1):
        entry_context = f"{context}, probability entry {idx}"
        if not isinstance(entry, Mapping):
            errors.append(f"{entry_context}: must be an object.")
            continue
        chance = entry.get("chance")
        if not is_number(chance) or chance < 0:
            errors.append(f"{entry_context}: requires a non-negative numeric 'chance'.")
        if "condition" in entry and entry["condition"] not in (None, ""):
            errors.extend(f"{entry_context}: {msg}" for msg in check_condition(entry["condition"]))
        errors.extend(validate_delta(entry.get("effect"), entry_context))
    return errors


def _validate_conditions(
    node: Mapping[str, Any], context: str, nodes: Mapping[str, Any], allow_delta: bool
) -> List[str]:
    conditions = node.get("conditions")
    if not isinstance(conditions, list) or not conditions:
        return [f"{context}: requires a non-empty 'conditions' list."]
    errors: List[str] = []
    for idx, entry in enumerate(conditions, start=1):
        entry_context = f"{context}, condition {idx}"
        if not isinstance(entry, Mapping):
            errors.append(f"{entry_context}: must be an object.")
            continue
        errors.extend(f"{entry_context}: {msg}" for msg in check_condition(entry.get("if")))
        errors.extend(_check_target(entry.get("next"), entry_context, "next", nodes))
        if allow_delta:
            errors.extend(validate_delta(entry.get("apply_delta"), entry_context))
        elif "apply_delta" in entry:
            errors.append(f"{entry_context}: 'apply_delta' is only supported on router nodes.")
    return errors


def _validate_narrative(node: Mapping[str, Any], context: str, nodes: Mapping[str, Any]) -> List[str]:
    by_location = node.get("next_by_location")
    if by_location is None:
        return _check_target(node.get("next"), context, "next", nodes)
    if not isinstance(by_location, Mapping) or not by_location:
        return [f"{context}: 'next_by_location' must be a non-empty object."]
    errors: List[str] = []
    for location, target in by_location.items():
        errors.extend(
            _check_target(target, f"{context}, location '{location}'", "next_by_location", nodes)
        )
    if "next" in node:
        errors.extend(_check_target(node.get("next"), context, "next", nodes))
    return errors


def validate_option(
    option: Any, context: str, nodes: Mapping[str, Any]
) -> List[str]:
    if not isinstance(option, Mapping):
        return [f"{context}: must be an object."]
    errors: List[str] = []
    if not is_non_empty_str(option.get("id")):
        errors.append(f"{context}: requires a non-empty string 'id'.")
    if "label" in option and not isinstance(option["label"], str):
        errors.append(f"{context}: 'label' must be a string.")
    errors.extend(_check_target(option.get("next"), context, "next", nodes))
    requires_flag = option.get("requires_flag")
    if requires_flag is not None and not is_non_empty_str(requires_flag):
        errors.append(f"{context}: 'requires_flag' must be a non-empty string.")
    requires_value = option.get("requires_value")
    if requires_value is not None:
        if not isinstance(requires_value, Mapping):
            errors.append(f"{context}: 'requires_value' must be an object.")
        else:
            for key, rule in requires_value.items():
                if key not in STAT_KEYS:
                    errors.append(f"{context}: 'requires_value' uses unknown stat '{key}'.")
                elif not isinstance(rule, Mapping) or not any(k in rule for k in ("min", "max")):
                    errors.append(f"{context}: 'requires_value.{key}' needs 'min' and/or 'max'.")
                elif not all(is_number(rule[k]) for k in ("min", "max") if k in rule):
                    errors.append(f"{context}: 'requires_value.{key}' bounds must be numbers.")
    flag = option.get("flag")
    if flag is not None and not str_or_str_list(flag):
        errors.append(f"{context}: 'flag' must be a string or list of strings.")
    errors.extend(validate_delta(option.get("delta"), context))
    errors.extend(validate_probability(option.get("probability"), context))
    overrides = option.get("persona_overrides")
    if overrides is not None:
        if not isinstance(overrides, Mapping):
            errors.append(f"{context}: 'persona_overrides' must be an object.")
        else:
            for persona, override in overrides.items():
                override_context = f"{context}, persona override '{persona}'"
                if not isinstance(override, Mapping):
                    errors.append(f"{override_context}: must be an object.")
                    continue
                errors.extend(validate_delta(override.get("delta"), override_context))
                errors.extend(validate_probability(override.get("probability"), override_context))
    return errors


def _validate_decision(node: Mapping[str, Any], context: str, nodes: Mapping[str, Any]) -> List[str]:
    options = node.get("options")
    if not isinstance(options, list) or not options:
        return [f"{context}: requires a non-empty 'options' list."]
    errors: List[str] = []
    for idx, option in enumerate(options, start=1):
        errors.extend(validate_option(option, f"{context}, option {idx}", nodes))
    ids = [option.get("id") for option in options if isinstance(option, Mapping)]
    duplicates = sorted(
        str(option_id) for option_id, count in Counter(ids).items() if count > 1 and option_id
    )
    if duplicates:
        errors.append(f"{context}: duplicate option ids: {', '.join(duplicates)}.")
    return errors


def _validate_router(node: Mapping[str, Any], context: str, nodes: Mapping[str, Any]) -> List[str]:
    errors = _validate_conditions(node, context, nodes, allow_delta=True)
    errors.extend(_check_target(node.get("default_next"), context, "default_next", nodes))
    return errors


def _validate_router_multi(node: Mapping[str, Any], context: str, nodes: Mapping[str, Any]) -> List[str]:
    errors = _validate_conditions(node, context, nodes, allow_delta=False)
    errors.extend(
        _check_target(node.get("next_after_feedback"), context, "next_after_feedback", nodes)
    )
    return errors


@dataclass(frozen=True)
class NodeSpec:
    required_fields: Tuple[str, ...]
    validate: NodeValidator


NODE_SPECS: Dict[str, NodeSpec] = {
    "narrative": NodeSpec(
        required_fields=(),
        validate=_validate_narrative,
    ),
    "decision": NodeSpec(
        required_fields=("options",),
        validate=_validate_decision,
    ),
    "router": NodeSpec(
        required_fields=("conditions", "default_next"),
        validate=_validate_router,
    ),
    "router_multi": NodeSpec(
        required_fields=("conditions", "next_after_feedback"),
        validate=_validate_router_multi,
    ),
    "outcome": NodeSpec(
        required_fields=(),
        validate=lambda node, context, nodes: [],
    ),
}

ROUTER_TYPES = frozenset({"router", "router_multi"})


def node_successors(node: Mapping[str, Any]) -> List[str]:
    """Every node id a node can move to, in authored order, duplicates removed."""
    targets: List[Any] = []
    node_type = node.get("type")
    if node_type == "narrative":
        targets.extend((node.get("next_by_location") or {}).values())
        targets.append(node.get("next"))
    elif node_type == "decision":
        for option in node.get("options") or []:
            if isinstance(option, Mapping):
                targets.append(option.get("next"))
    elif node_type in ("router", "router_multi"):
        for entry in node.get("conditions") or []:
            if isinstance(entry, Mapping):
                targets.append(entry.get("next"))
        fallback = "default_next" if node_type == "router" else "next_after_feedback"
        targets.append(node.get(fallback))
    return list(dict.fromkeys(t for t in targets if is_non_empty_str(t)))
