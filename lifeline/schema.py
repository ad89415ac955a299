"""Catalog validation for Lifeline content documents."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from lifeline.catalog_schema import (
    NODE_SPECS,
    format_validation_message,
    is_non_empty_str,
    is_number,
    path,
    validate_delta,
)
from lifeline.expressions import STAT_KEYS, check_condition


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))

    def extend_with_path(self, messages: Iterable[str], path_str: str) -> None:
        for message in messages:
            self.errors.append(f"{path_str}: {message}")

    def ok(self) -> bool:
        return not self.errors


def require(condition: bool, context: str, path_str: str, message: str, ctx: ValidationContext) -> None:
    if not condition:
        ctx.add(context, path_str, message)


def validate_system(system: Any, ctx: ValidationContext) -> None:
    if not isinstance(system, Mapping):
        ctx.add("Catalog", path("system"), "must include a 'system' object.")
        return

    seen = set()
    for section in ("variables", "skills"):
        rules = system.get(section)
        if not isinstance(rules, Mapping):
            ctx.add("System", path("system", section), f"'{section}' must be an object.")
            continue
        for key, rule in rules.items():
            rule_path = path("system", section, key)
            if key not in STAT_KEYS:
                ctx.add("System", rule_path, f"unknown stat '{key}'.")
                continue
            seen.add(key)
            if not isinstance(rule, Mapping):
                ctx.add("System", rule_path, "bounds must be an object with 'min' and 'max'.")
                continue
            low, high = rule.get("min"), rule.get("max")
            if not (is_number(low) and is_number(high)):
                ctx.add("System", rule_path, "requires numeric 'min' and 'max'.")
            elif low > high:
                ctx.add("System", rule_path, f"'min' ({low}) is greater than 'max' ({high}).")

    missing = [key for key in STAT_KEYS if key not in seen]
    if missing:
        ctx.add("System", path("system"), f"missing bounds for stat(s): {', '.join(missing)}.")

    initial = system.get("initial_values")
    if not isinstance(initial, Mapping):
        ctx.add("System", path("system", "initial_values"), "'initial_values' must be an object.")
        return
    for key in STAT_KEYS:
        value = initial.get(key)
        require(
            is_number(value),
            "System",
            path("system", "initial_values", key),
            f"requires a numeric initial value for '{key}'.",
            ctx,
        )


def validate_selectors(catalog: Mapping[str, Any], section: str, ctx: ValidationContext) -> None:
    entries = catalog.get(section)
    if not isinstance(entries, Mapping) or not entries:
        ctx.add("Catalog", path(section), f"'{section}' must be a non-empty object.")
        return
    for key, entry in entries.items():
        entry_path = path(section, key)
        if entry is None:
            continue
        if not isinstance(entry, Mapping):
            ctx.add(section.title(), entry_path, "must be an object.")
            continue
        ctx.extend_with_path(validate_delta(entry.get("delta"), f"'{key}'"), entry_path)


def validate_outcomes(outcomes: Any, ctx: ValidationContext) -> None:
    if outcomes is None:
        outcomes = []
    if not isinstance(outcomes, list):
        ctx.add("Catalog", path("outcomes"), "'outcomes' must be a list of rules.")
        return
    for idx, rule in enumerate(outcomes):
        rule_path = path("outcomes", idx)
        context = f"Outcome rule {idx + 1}"
        if not isinstance(rule, Mapping):
            ctx.add(context, rule_path, "must be an object.")
            continue
        ctx.extend_with_path(check_condition(rule.get("condition")), rule_path)
        require(is_number(rule.get("priority")), context, rule_path, "requires a numeric 'priority'.", ctx)
        require(is_non_empty_str(rule.get("result")), context, rule_path, "requires a non-empty 'result'.", ctx)


def validate_literacy(scoring: Any, ctx: ValidationContext) -> None:
    if scoring is None:
        return
    if not isinstance(scoring, Mapping):
        ctx.add("Catalog", path("literacy_scoring"), "'literacy_scoring' must be an object.")
        return
    max_score = scoring.get("max_score")
    if max_score is not None and not is_number(max_score):
        ctx.add("Literacy", path("literacy_scoring", "max_score"), "'max_score' must be a number.")
    rules = scoring.get("rules") or []
    if not isinstance(rules, list):
        ctx.add("Literacy", path("literacy_scoring", "rules"), "'rules' must be a list.")
        return
    for idx, rule in enumerate(rules):
        rule_path = path("literacy_scoring", "rules", idx)
        context = f"Literacy rule {idx + 1}"
        if not isinstance(rule, Mapping):
            ctx.add(context, rule_path, "must be an object.")
            continue
        require(is_non_empty_str(rule.get("id")), context, rule_path, "requires a non-empty 'id'.", ctx)
        require(is_number(rule.get("score")), context, rule_path, "requires a numeric 'score'.", ctx)
        if rule.get("condition") or rule.get("if"):
            ctx.extend_with_path(check_condition(rule.get("condition") or rule.get("if")), rule_path)
        elif rule.get("if_flag"):
            require(
                is_non_empty_str(rule.get("if_flag")), context, rule_path, "'if_flag' must be a string.", ctx
            )
        elif rule.get("if_any_flag"):
            flags = rule.get("if_any_flag")
            require(
                isinstance(flags, list) and all(is_non_empty_str(flag) for flag in flags),
                context,
                rule_path,
                "'if_any_flag' must be a list of strings.",
                ctx,
            )
        else:
            ctx.add(context, rule_path, "needs one of 'condition', 'if', 'if_flag' or 'if_any_flag'.")


def validate_catalog(catalog: Mapping[str, Any]) -> List[str]:
    ctx = ValidationContext()

    nodes = catalog.get("nodes")
    if not isinstance(nodes, Mapping) or not nodes:
        ctx.add("Catalog", path("nodes"), "must include a non-empty 'nodes' object.")
        nodes = {}

    for node_id, node in nodes.items():
        node_path = path("nodes", node_id)
        context = f"Node '{node_id}'"
        if not isinstance(node, Mapping):
            ctx.add("Nodes", node_path, f"node '{node_id}' must be an object.")
            continue
        node_type = node.get("type")
        node_spec = NODE_SPECS.get(node_type)
        if node_spec is None:
            ctx.add(context, path("nodes", node_id, "type"), f"unsupported node type '{node_type}'.")
            continue
        missing = [name for name in node_spec.required_fields if name not in node]
        if missing:
            ctx.add(context, node_path, f"missing required field(s): {', '.join(missing)}.")
            continue
        ctx.extend_with_path(node_spec.validate(node, context, nodes), node_path)

    start_node = catalog.get("start_node")
    if start_node is not None:
        if not is_non_empty_str(start_node):
            ctx.add("Catalog", path("start_node"), "'start_node' must be a non-empty string.")
        elif nodes and start_node not in nodes:
            ctx.add("Catalog", path("start_node"), f"references unknown node '{start_node}'.")

    validate_system(catalog.get("system"), ctx)
    validate_selectors(catalog, "personas", ctx)
    validate_selectors(catalog, "locations", ctx)
    validate_outcomes(catalog.get("outcomes"), ctx)
    validate_literacy(catalog.get("literacy_scoring"), ctx)

    return ctx.errors
