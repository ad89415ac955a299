import logging

import pytest

from lifeline.expressions import (
    ExpressionError,
    check_condition,
    compile_condition,
    evaluate,
    referenced_symbols,
    tokenize,
)
from lifeline.state import GameState


def make_state(**fields) -> GameState:
    base = {"node": "n", "persona": "Student", "location": "Coastal"}
    base.update(fields)
    return GameState(**base)


@pytest.mark.parametrize(
    ("condition", "expected"),
    [
        ("flags.includes('KIT') && S >= 3", True),
        ("'KIT' in flags and not HR > 2", True),
        ("!flags.includes('KIT')", False),
        ("'MISSING' not in flags", True),
        ("location === 'Coastal'", True),
        ("location !== 'Coastal' || R == 2", True),
        ("SA + FM + LA >= 2", True),
        ("S > 1 || R > 9 && M > 9", True),
        ("(S > 1 || R > 9) && M > 9", False),
        ("-HR < 0", True),
        ("S * 2 - 1 == 5", True),
        ("true", True),
        ("False", False),
    ],
)
def test_evaluate_supports_both_condition_dialects(condition: str, expected: bool) -> None:
    state = make_state(S=3, R=2, M=1, HR=1, SA=1, FM=1, flags=["KIT"])
    assert evaluate(condition, state) is expected


def test_escaped_quotes_inside_string_literals() -> None:
    state = make_state(flags=["it's"])
    assert evaluate("flags.includes('it\\'s')", state) is True


@pytest.mark.parametrize(
    "condition",
    ["S ==", "S > > 1", "flags.contains('A')", "S @ 2", "unknown > 1", "S / 0 > 1", "flags + 1 > 0"],
)
def test_failing_conditions_count_as_false(condition: str, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lifeline.expressions")
    assert evaluate(condition, make_state(S=3)) is False
    assert any(condition in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize(
    "condition",
    [
        "(" * 200 + "S > 1" + ")" * 200,
        "!" * 1200 + "true",
        "not " * 300 + "true",
        "-" * 500 + "S > 0",
        "flags.includes(" * 100 + "'A'" + ")" * 100,
    ],
)
def test_deeply_nested_conditions_are_rejected_not_crashing(
    condition: str, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="lifeline.expressions")
    assert evaluate(condition, make_state(S=3)) is False
    assert "nested deeper than" in caplog.text
    with pytest.raises(ExpressionError, match="nested deeper than"):
        compile_condition(condition)


def test_nesting_within_limit_still_parses() -> None:
    condition = "(" * 40 + "S > 1" + ")" * 40
    assert evaluate(condition, make_state(S=3)) is True
    assert evaluate("!" * 20 + "true", make_state()) is True


def test_overlong_flat_chain_fails_quietly(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lifeline.expressions")
    condition = " + ".join(["S"] * 5000) + " > 0"
    assert evaluate(condition, make_state(S=1)) is False
    assert "too long to evaluate" in caplog.text
    assert check_condition(condition) == []


def test_check_condition_reports_deep_nesting() -> None:
    errors = check_condition("(" * 200 + "S" + ")" * 200)
    assert len(errors) == 1
    assert "nested deeper than 64 levels" in errors[0]


def test_non_string_condition_is_false() -> None:
    assert evaluate(None, make_state()) is False
    assert evaluate(["S > 1"], make_state()) is False


def test_tokenize_maps_python_keywords_to_operators() -> None:
    tokens = tokenize("not S and R or 'x' in flags")
    values = [token.value for token in tokens if token.kind == "op"]
    assert values == ["not", "&&", "||", "in"]
    assert tokens[-1].kind == "end"


def test_compile_condition_rejects_blank_text() -> None:
    with pytest.raises(ExpressionError):
        compile_condition("   ")


def test_referenced_symbols_in_first_seen_order() -> None:
    tree = compile_condition("S > 1 && flags.includes('A') && S < 9 && location == 'Hill'")
    assert referenced_symbols(tree) == ["S", "flags", "location"]


def test_check_condition_reports_problems() -> None:
    assert check_condition("S >= 1 && flags.includes('A')") == []
    assert "malformed" in check_condition("S >=")[0]
    assert "unknown symbol(s): hp" in check_condition("hp > 1")[0]
    assert "must be a string" in check_condition(3)[0]
