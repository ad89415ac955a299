import logging
import random

import pytest

from lifeline.interpreter import StoryEngine
from lifeline.routing import RoutingError, auto_advance
from lifeline.settings import EngineSettings
from lifeline.state import GameState


def make_state(node: str, **fields) -> GameState:
    base = {"node": node, "persona": "Student", "location": "Coastal"}
    base.update(fields)
    return GameState(**base)


ROUTER_NODES = {
    "start": {
        "type": "router",
        "conditions": [
            {"if": "S >= 5", "apply_delta": {"HR": 1}, "next": "high"},
            {"if": "S >= 1", "next": "mid"},
        ],
        "default_next": "low",
    },
    "high": {"type": "narrative", "text": "High", "next": "end"},
    "mid": {"type": "narrative", "text": "Mid", "next": "end"},
    "low": {"type": "narrative", "text": "Low", "next": "end"},
    "end": {"type": "outcome"},
}


@pytest.mark.parametrize(("s", "expected", "hr"), [(6, "high", 1), (3, "mid", 0), (0, "low", 0)])
def test_router_takes_first_matching_branch(make_catalog, s: int, expected: str, hr: int) -> None:
    catalog = make_catalog(ROUTER_NODES)
    state = auto_advance(make_state("start", S=s), catalog)
    assert state.node == expected
    assert state.HR == hr


def test_router_chain_stops_at_first_interactive_node(make_catalog) -> None:
    nodes = {
        "start": {"type": "router", "conditions": [{"if": "false", "next": "end"}], "default_next": "hop"},
        "hop": {"type": "router", "conditions": [{"if": "R > 1", "next": "scene"}], "default_next": "end"},
        "scene": {"type": "narrative", "next": "end"},
        "end": {"type": "outcome"},
    }
    state = auto_advance(make_state("start", R=3), make_catalog(nodes))
    assert state.node == "scene"
    assert not state.is_terminal


def test_routing_into_outcome_scores_the_run(make_catalog) -> None:
    nodes = {
        "start": {"type": "router", "conditions": [{"if": "S > 100", "next": "start"}], "default_next": "end"},
        "end": {"type": "outcome"},
    }
    state = auto_advance(make_state("start", S=1), make_catalog(nodes))
    assert state.node == "end"
    assert state.outcome == "Done"
    assert state.literacy_score == 0
    assert state.max_literacy_score == 5


FEEDBACK_NODES = {
    "start": {"type": "narrative", "next": "feed"},
    "feed": {
        "type": "router_multi",
        "conditions": [
            {"if": "flags.includes('A')", "next": "c1"},
            {"if": "'B' in flags", "next": "c2"},
            {"if": "S >= 1", "next": "c3"},
        ],
        "next_after_feedback": "after",
    },
    "c1": {"type": "narrative", "text": "one", "next": "feed"},
    "c2": {"type": "narrative", "text": "two", "next": "feed"},
    "c3": {"type": "narrative", "text": "three", "next": "feed"},
    "after": {"type": "narrative", "text": "after", "next": "end"},
    "end": {"type": "outcome"},
}


def test_router_multi_fans_out_and_queues_the_rest(make_catalog) -> None:
    catalog = make_catalog(FEEDBACK_NODES)
    state = auto_advance(make_state("feed", S=2, flags=["A", "B"]), catalog)
    assert state.node == "c1"
    assert state.feedback_queue == ["c2", "c3"]
    assert state.router_return_node == "after"
    assert state.routed == ["feed"]


def test_feedback_queue_plays_every_branch_then_resumes(make_catalog) -> None:
    engine = StoryEngine(make_catalog(FEEDBACK_NODES), rng=random.Random(0))
    state = auto_advance(make_state("feed", S=2, flags=["A", "B"]), engine.catalog)

    visited = []
    for _ in range(3):
        state = engine.continue_story(state)
        visited.append(state.node)

    assert visited == ["c2", "c3", "after"]
    assert state.feedback_queue == []
    assert state.routed == ["feed"]
    # Draining through non-empty entries never clears the return node.
    assert state.router_return_node == "after"


def test_router_multi_with_single_match_leaves_queue_empty(make_catalog) -> None:
    engine = StoryEngine(make_catalog(FEEDBACK_NODES), rng=random.Random(0))
    state = auto_advance(make_state("feed", S=0, flags=["B"]), engine.catalog)
    assert state.node == "c2"
    assert state.feedback_queue == []
    state = engine.continue_story(state)
    assert state.node == "after"


def test_router_multi_without_matches_goes_straight_to_return_node(make_catalog) -> None:
    state = auto_advance(make_state("feed", S=0), make_catalog(FEEDBACK_NODES))
    assert state.node == "after"
    assert state.routed == []
    assert state.router_return_node is None


def test_router_multi_is_skipped_once_marked(make_catalog) -> None:
    state = auto_advance(make_state("feed", S=2, flags=["A"], routed=["feed"]), make_catalog(FEEDBACK_NODES))
    assert state.node == "after"
    assert state.feedback_queue == []
    assert "feed" not in state.flags


def test_router_cycle_raises_routing_error(make_catalog) -> None:
    nodes = {
        "start": {"type": "router", "conditions": [{"if": "false", "next": "b"}], "default_next": "b"},
        "b": {"type": "router", "conditions": [{"if": "false", "next": "start"}], "default_next": "start"},
    }
    catalog = make_catalog(nodes)
    with pytest.raises(RoutingError) as excinfo:
        auto_advance(make_state("start"), catalog, max_hops=10)
    assert excinfo.value.max_hops == 10
    assert len(excinfo.value.trail) == 11
    assert "start -> b" in str(excinfo.value)


def test_engine_uses_configured_hop_limit(make_catalog) -> None:
    nodes = {
        "start": {"type": "router", "conditions": [{"if": "false", "next": "start"}], "default_next": "start"},
    }
    engine = StoryEngine(make_catalog(nodes), EngineSettings(max_hops=3), rng=random.Random(0))
    with pytest.raises(RoutingError, match="after 3 hops"):
        engine.initial_state("Student", "Hill")


def test_missing_node_stops_routing(make_catalog, caplog: pytest.LogCaptureFixture) -> None:
    nodes = {
        "start": {"type": "router", "conditions": [{"if": "true", "next": "ghost"}], "default_next": "ghost"},
    }
    caplog.set_level(logging.ERROR, logger="lifeline.routing")
    state = auto_advance(make_state("start"), make_catalog(nodes, validate=False))
    assert state.node == "ghost"
    assert "ghost" in caplog.text


def test_non_router_node_is_left_alone(make_catalog) -> None:
    original = make_state("high", S=6)
    state = auto_advance(original, make_catalog(ROUTER_NODES))
    assert state is original
    assert state.node == "high"
