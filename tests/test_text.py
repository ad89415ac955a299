from lifeline.state import GameState, format_stat, risk_level
from lifeline.text import node_text, render_text


def make_state(**fields) -> GameState:
    base = {"node": "n", "persona": "Parent", "location": "River"}
    base.update(fields)
    return GameState(**base)


def test_location_text_overrides_persona_text() -> None:
    node = {
        "text": "Base",
        "text_by_persona": {"Parent": "Parent text"},
        "text_by_location": {"River": "River text"},
    }
    assert node_text(node, make_state()) == "River text"
    assert node_text(node, make_state(location="Hill")) == "Parent text"
    assert node_text(node, make_state(persona="Elder", location="Hill")) == "Base"
    assert node_text(None, make_state()) == ""


def test_render_text_substitutes_known_stats_only() -> None:
    state = make_state(S=3.0, HR=1.5)
    rendered = render_text("Safety {S}, risk {HR}, unknown {XP}.", state)
    assert rendered == "Safety 3, risk 1.5, unknown {XP}."
    assert render_text("", state) == ""


def test_format_stat_and_risk_level() -> None:
    assert format_stat(4.0) == "4"
    assert format_stat(2) == "2"
    assert [risk_level(v) for v in (0, 1, 2, 3, None)] == [
        "Stable",
        "Elevated",
        "Elevated",
        "Critical",
        "Stable",
    ]


def test_summary_mentions_stats_and_flags() -> None:
    state = make_state(S=4, HR=3, flags=["KIT_READY"])
    summary = state.summary()
    assert summary.startswith("Parent @ River")
    assert "S:4" in summary
    assert "RISK: Critical" in summary
    assert "FLAGS: KIT_READY" in summary
