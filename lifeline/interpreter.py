"""Lifeline interpreter: starting a run and applying player choices.

Every public call takes a ``GameState`` and returns a new one; the state that was
passed in is never modified, so callers can keep earlier snapshots around.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from lifeline.catalog import Catalog
from lifeline.effects import apply_delta, apply_probability, initial_stats
from lifeline.routing import auto_advance
from lifeline.settings import EngineSettings
from lifeline.state import GameState, HistoryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionView:
    option: Mapping[str, Any]
    locked: bool
    reason: Optional[str] = None

    @property
    def id(self) -> Optional[str]:
        return self.option.get("id")

    @property
    def label(self) -> str:
        return self.option.get("label") or self.option.get("id") or "?"


def option_flags(option: Mapping[str, Any]) -> List[str]:
    flag = option.get("flag")
    if not flag:
        return []
    if isinstance(flag, list):
        return [f for f in flag if f]
    return [flag]


def option_lock_reason(option: Mapping[str, Any], state: GameState) -> Optional[str]:
    """Return why ``option`` cannot be taken right now, or ``None`` when it can."""
    required_flag = option.get("requires_flag")
    if required_flag and not state.has_flag(required_flag):
        return f"requires {required_flag}"
    for key, rule in (option.get("requires_value") or {}).items():
        try:
            value = state.stat(key)
        except KeyError:
            continue
        low = rule.get("min")
        high = rule.get("max")
        if low is not None and value < low:
            return f"{key} must be at least {low}"
        if high is not None and value > high:
            return f"{key} must be at most {high}"
    return None


class StoryEngine:
    """Runs one catalog; each call is a complete, synchronous transition."""

    def __init__(
        self,
        catalog: Catalog,
        settings: Optional[EngineSettings] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.catalog = catalog
        self.settings = (settings or EngineSettings()).copy()
        if rng is None:
            rng = random.Random(self.settings.seed)
        self.rng = rng

    @property
    def start_node(self) -> str:
        return self.catalog.start_node or self.settings.start_node

    def _advance(self, state: GameState) -> GameState:
        return auto_advance(state, self.catalog, max_hops=self.settings.max_hops)

    # ---------- Start ----------
    def initial_state(
        self, persona: Optional[str] = None, location: Optional[str] = None
    ) -> GameState:
        if persona is None:
            persona = self.rng.choice(sorted(self.catalog.personas))
        if location is None:
            location = self.rng.choice(sorted(self.catalog.locations))
        if persona not in self.catalog.personas:
            raise ValueError(f"Unknown persona '{persona}'.")
        if location not in self.catalog.locations:
            raise ValueError(f"Unknown location '{location}'.")

        persona_delta = (self.catalog.personas.get(persona) or {}).get("delta")
        location_delta = (self.catalog.locations.get(location) or {}).get("delta")
        stats = initial_stats(
            self.catalog.initial_values, self.catalog.bounds, persona_delta, location_delta
        )
        state = GameState(node=self.start_node, persona=persona, location=location, **stats)
        logger.info("New run: persona=%s location=%s start=%s", persona, location, state.node)
        return self._advance(state)

    # ---------- Transitions ----------
    def apply_option(
        self, state: GameState, option: Optional[Mapping[str, Any]] = None
    ) -> GameState:
        new_state = state.copy()
        node = self.catalog.node(new_state.node)
        if not node:
            logger.error("Current node '%s' is not in the catalog.", new_state.node)
            return new_state

        if new_state.feedback_queue:
            return self._drain_feedback(new_state)

        node_type = node.get("type")
        if node_type == "narrative":
            return self._continue_narrative(new_state, node)
        if node_type == "decision":
            return self._take_decision(new_state, node, option)
        return new_state

    def _drain_feedback(self, state: GameState) -> GameState:
        target = state.feedback_queue.pop(0)
        if target:
            state.node = target
            return state
        if not state.router_return_node:
            return state
        state.node = state.router_return_node
        state.router_return_node = None
        state.feedback_queue = []
        return self._advance(state)

    def _continue_narrative(self, state: GameState, node: Mapping[str, Any]) -> GameState:
        state.history.append(HistoryEntry(state.node))
        by_location = node.get("next_by_location")
        target = None
        if by_location:
            target = by_location.get(state.location)
            if target is None:
                logger.warning(
                    "Node '%s' has no branch for location '%s'; using 'next'.",
                    state.node, state.location,
                )
        state.node = target or node.get("next")
        return self._advance(state)

    def _take_decision(
        self,
        state: GameState,
        node: Mapping[str, Any],
        option: Optional[Mapping[str, Any]],
    ) -> GameState:
        if not option:
            return state
        reason = option_lock_reason(option, state)
        if reason:
            logger.info("Option %r rejected at '%s': %s", option.get("id"), state.node, reason)
            return state

        bounds = self.catalog.bounds
        state.history.append(HistoryEntry(state.node, option.get("id")))
        apply_delta(state, option.get("delta"), bounds)

        override = (option.get("persona_overrides") or {}).get(state.persona) or {}
        if override.get("delta"):
            apply_delta(state, override["delta"], bounds)
        table = override.get("probability") or option.get("probability")
        if table:
            apply_probability(state, table, bounds, self.rng)

        state.add_flags(option_flags(option))
        state.node = option.get("next")
        return self._advance(state)

    # ---------- Presentation helpers ----------
    def choose(self, state: GameState, option_id: str) -> GameState:
        node = self.catalog.node(state.node) or {}
        for option in node.get("options") or []:
            if option.get("id") == option_id:
                return self.apply_option(state, option)
        logger.info("Unknown option '%s' at node '%s'.", option_id, state.node)
        return state.copy()

    def continue_story(self, state: GameState) -> GameState:
        return self.apply_option(state)

    def available_options(self, state: GameState) -> List[OptionView]:
        node = self.catalog.node(state.node) or {}
        if node.get("type") != "decision":
            return []
        views = []
        for option in node.get("options") or []:
            reason = option_lock_reason(option, state)
            views.append(OptionView(option=option, locked=reason is not None, reason=reason))
        return views


def get_initial_state(
    catalog: Catalog,
    *,
    settings: Optional[EngineSettings] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    return StoryEngine(catalog, settings, rng=rng).initial_state()


def apply_option(
    catalog: Catalog,
    state: GameState,
    option: Optional[Mapping[str, Any]] = None,
    *,
    settings: Optional[EngineSettings] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    return StoryEngine(catalog, settings, rng=rng).apply_option(state, option)
