"""Stat deltas, clamping and weighted probability tables."""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from lifeline.expressions import STAT_KEYS, evaluate
from lifeline.state import GameState

logger = logging.getLogger(__name__)

Bounds = Mapping[str, Tuple[float, float]]


def clamp(n, lo, hi): return lo if n < lo else hi if n > hi else n


def apply_delta(state: GameState, delta: Optional[Mapping[str, Any]], bounds: Bounds) -> None:
    if not delta:
        return
    for key in STAT_KEYS:
        amount = delta.get(key)
        if not amount:
            continue
        lo, hi = bounds[key]
        state.set_stat(key, clamp(state.stat(key) + amount, lo, hi))


def eligible_entries(state: GameState, entries: Optional[Sequence[Mapping[str, Any]]]) -> List[Mapping[str, Any]]:
    eligible = []
    for entry in entries or []:
        condition = entry.get("condition")
        if not condition or evaluate(condition, state):
            eligible.append(entry)
    return eligible


def pick_entry(eligible: Sequence[Mapping[str, Any]], roll: float) -> Optional[Mapping[str, Any]]:
    if not eligible:
        return None
    cumulative = 0.0
    for entry in eligible:
        cumulative += float(entry.get("chance") or 0)
        if roll <= cumulative:
            return entry
    return eligible[-1]


def apply_probability(
    state: GameState,
    entries: Optional[Sequence[Mapping[str, Any]]],
    bounds: Bounds,
    rng: random.Random,
) -> Optional[Mapping[str, Any]]:
    """Roll against the eligible entries and apply the winner's effect.

    Returns the selected entry, or ``None`` when nothing was eligible.
    """
    eligible = eligible_entries(state, entries)
    if not eligible:
        return None
    roll = rng.random()
    selected = pick_entry(eligible, roll)
    logger.debug("Probability roll %.4f selected %r", roll, selected.get("effect"))
    apply_delta(state, selected.get("effect"), bounds)
    return selected


def initial_stats(
    initial_values: Mapping[str, float],
    bounds: Bounds,
    *deltas: Optional[Mapping[str, Any]],
) -> Dict[str, float]:
    stats: Dict[str, float] = {}
    for key in STAT_KEYS:
        value = initial_values.get(key, 0)
        for delta in deltas:
            value += (delta or {}).get(key) or 0
        lo, hi = bounds[key]
        stats[key] = clamp(value, lo, hi)
    return stats
