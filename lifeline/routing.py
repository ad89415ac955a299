"""Auto-advance through routers until the story needs the player again."""

from __future__ import annotations

import logging
from typing import List, Optional

from lifeline.catalog import Catalog
from lifeline.effects import apply_delta
from lifeline.expressions import evaluate
from lifeline.scoring import score
from lifeline.state import GameState

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 500


class RoutingError(Exception):
    """Raised when auto-advance keeps hopping between routers without stopping."""

    def __init__(self, trail: List[str], max_hops: int) -> None:
        self.trail = trail
        self.max_hops = max_hops
        tail = " -> ".join(trail[-8:])
        super().__init__(
            f"routing did not terminate after {max_hops} hops (last nodes: {tail})"
        )


def _matching_targets(node, state: GameState) -> List[str]:
    matches = []
    for entry in node.get("conditions") or []:
        if entry.get("if") and evaluate(entry["if"], state):
            matches.append(entry.get("next"))
    return matches


def _route_multi(node_id: str, node, state: GameState) -> bool:
    """Resolve a router_multi node in place. Returns True when the loop should stop."""
    return_node = node.get("next_after_feedback")
    if node_id in state.routed:
        state.node = return_node
        return False

    matches = _matching_targets(node, state)
    if not matches:
        state.node = return_node
        return False

    state.routed.append(node_id)
    state.feedback_queue = matches[1:]
    state.router_return_node = return_node
    state.node = matches[0]
    logger.debug(
        "Router %s fanned out to %s (queued %s, return %s)",
        node_id, matches[0], matches[1:], return_node,
    )
    return True


def _route_single(node, state: GameState, catalog: Catalog) -> None:
    for entry in node.get("conditions") or []:
        if entry.get("if") and evaluate(entry["if"], state):
            if entry.get("apply_delta"):
                apply_delta(state, entry["apply_delta"], catalog.bounds)
            state.node = entry.get("next")
            return
    state.node = node.get("default_next")


def auto_advance(
    state: GameState,
    catalog: Catalog,
    *,
    max_hops: Optional[int] = DEFAULT_MAX_HOPS,
) -> GameState:
    """Advance ``state`` in place past routers and into an interactive or terminal node."""
    trail: List[str] = []
    while True:
        node = catalog.node(state.node)
        if not node:
            logger.error("Missing node '%s'; stopping at invalid state.", state.node)
            return state

        node_type = node.get("type")
        if node_type == "outcome":
            score(state, catalog)
            return state

        if node_type not in ("router", "router_multi"):
            return state

        trail.append(state.node)
        if max_hops is not None and len(trail) > max_hops:
            raise RoutingError(trail, max_hops)

        if node_type == "router_multi":
            if _route_multi(state.node, node, state):
                return state
            continue

        _route_single(node, state, catalog)
