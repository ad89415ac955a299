"""Outcome selection and literacy rubric scoring."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from lifeline.catalog import Catalog
from lifeline.expressions import evaluate
from lifeline.state import GameState, LiteracyDetail

logger = logging.getLogger(__name__)


def select_outcome(state: GameState, catalog: Catalog) -> None:
    ranked = sorted(catalog.outcomes, key=lambda rule: rule.get("priority", 0))
    for rule in ranked:
        if evaluate(rule.get("condition"), state):
            state.outcome = rule.get("result")
            state.outcome_description = rule.get("description") or ""
            return
    logger.warning("No outcome rule matched at node '%s'.", state.node)


def literacy_rule_matches(rule: Mapping[str, Any], state: GameState) -> bool:
    if rule.get("condition"):
        return evaluate(rule["condition"], state)
    if rule.get("if"):
        return evaluate(rule["if"], state)
    if rule.get("if_flag"):
        return state.has_flag(rule["if_flag"])
    if rule.get("if_any_flag"):
        return any(state.has_flag(flag) for flag in rule["if_any_flag"])
    return False


def score_literacy(state: GameState, catalog: Catalog) -> None:
    total = 0
    details = []
    for rule in catalog.literacy_rules:
        if not literacy_rule_matches(rule, state):
            continue
        total += rule.get("score", 0)
        details.append(
            LiteracyDetail(
                id=rule.get("id"),
                dimension=rule.get("dimension"),
                explanation=rule.get("explain_success"),
            )
        )
    state.literacy_score = total
    state.literacy_details = details
    state.max_literacy_score = catalog.max_literacy_score


def score(state: GameState, catalog: Catalog) -> None:
    """Fill in outcome and literacy fields once; later calls leave them untouched."""
    if state.is_terminal:
        return
    select_outcome(state, catalog)
    score_literacy(state, catalog)
    logger.info(
        "Outcome %r reached with literacy %s/%s",
        state.outcome, state.literacy_score, state.max_literacy_score,
    )
