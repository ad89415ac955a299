"""Sandboxed evaluator for authored condition strings."""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

STAT_KEYS: Tuple[str, ...] = ("S", "R", "M", "SC", "HR", "SA", "FM", "LA")
SYMBOLS = frozenset(STAT_KEYS + ("flags", "location"))

KEYWORDS = {
    "and": "&&",
    "or": "||",
    "not": "not",
    "in": "in",
    "true": True,
    "True": True,
    "false": False,
    "False": False,
}

TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+(?:\.\d*)?|\.\d+)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!+\-*/%().,])
    """,
    re.VERBOSE,
)


class ExpressionError(ValueError):
    """Raised when a condition cannot be tokenized or parsed."""


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    pos: int


# ---------- AST ----------
@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class MembershipTest:
    item: "Expr"
    container: "Expr"
    negated: bool = False


Expr = Union[Literal, Variable, UnaryOp, BinaryOp, MembershipTest]


# ---------- Tokenizer ----------
def _unescape(raw: str) -> str:
    body = raw[1:-1]
    return re.sub(r"\\(.)", lambda match: match.group(1), body)


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        match = TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise ExpressionError(f"unexpected character {text[pos]!r} at {pos}")
        kind = match.lastgroup
        raw = match.group()
        if kind == "number":
            value: Any = float(raw) if "." in raw else int(raw)
            tokens.append(Token("literal", value, pos))
        elif kind == "string":
            tokens.append(Token("literal", _unescape(raw), pos))
        elif kind == "name":
            keyword = KEYWORDS.get(raw)
            if isinstance(keyword, bool):
                tokens.append(Token("literal", keyword, pos))
            elif keyword is not None:
                tokens.append(Token("op", keyword, pos))
            else:
                tokens.append(Token("name", raw, pos))
        elif kind == "op":
            tokens.append(Token("op", raw, pos))
        pos = match.end()
    tokens.append(Token("end", None, len(text)))
    return tokens


# ---------- Parser ----------
COMPARISON_OPS = {"==", "===", "!=", "!==", "<", "<=", ">", ">="}
MAX_NESTING = 64


class _Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    def peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.peek()
        self.index += 1
        return token

    def at_op(self, *ops: str) -> bool:
        token = self.peek()
        return token.kind == "op" and token.value in ops

    def expect_op(self, op: str) -> None:
        token = self.advance()
        if token.kind != "op" or token.value != op:
            raise ExpressionError(f"expected {op!r} at {token.pos}")

    def nested(self, parse: Callable[[], Expr], pos: int) -> Expr:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionError(f"condition nested deeper than {MAX_NESTING} levels at {pos}")
        try:
            return parse()
        finally:
            self.depth -= 1

    def parse(self) -> Expr:
        expr = self.or_expr()
        token = self.peek()
        if token.kind != "end":
            raise ExpressionError(f"unexpected token {token.value!r} at {token.pos}")
        return expr

    def or_expr(self) -> Expr:
        left = self.and_expr()
        while self.at_op("||"):
            self.advance()
            left = BinaryOp("||", left, self.and_expr())
        return left

    def and_expr(self) -> Expr:
        left = self.not_expr()
        while self.at_op("&&"):
            self.advance()
            left = BinaryOp("&&", left, self.not_expr())
        return left

    def not_expr(self) -> Expr:
        if self.at_op("not"):
            pos = self.advance().pos
            return UnaryOp("!", self.nested(self.not_expr, pos))
        return self.comparison()

    def comparison(self) -> Expr:
        left = self.additive()
        if self.at_op(*COMPARISON_OPS):
            op = self.advance().value
            return BinaryOp(op, left, self.additive())
        if self.at_op("in"):
            self.advance()
            return MembershipTest(left, self.additive())
        if self.at_op("not") and self.peek(1).kind == "op" and self.peek(1).value == "in":
            self.advance()
            self.advance()
            return MembershipTest(left, self.additive(), negated=True)
        return left

    def additive(self) -> Expr:
        left = self.term()
        while self.at_op("+", "-"):
            op = self.advance().value
            left = BinaryOp(op, left, self.term())
        return left

    def term(self) -> Expr:
        left = self.unary()
        while self.at_op("*", "/", "%"):
            op = self.advance().value
            left = BinaryOp(op, left, self.unary())
        return left

    def unary(self) -> Expr:
        if self.at_op("!", "-", "+"):
            token = self.advance()
            return UnaryOp(token.value, self.nested(self.unary, token.pos))
        return self.postfix()

    def postfix(self) -> Expr:
        expr = self.primary()
        while self.at_op("."):
            self.advance()
            method = self.advance()
            if method.kind != "name" or method.value != "includes":
                raise ExpressionError(f"unsupported method {method.value!r} at {method.pos}")
            self.expect_op("(")
            item = self.nested(self.or_expr, method.pos)
            self.expect_op(")")
            expr = MembershipTest(item, expr)
        return expr

    def primary(self) -> Expr:
        token = self.advance()
        if token.kind == "literal":
            return Literal(token.value)
        if token.kind == "name":
            return Variable(token.value)
        if token.kind == "op" and token.value == "(":
            expr = self.nested(self.or_expr, token.pos)
            self.expect_op(")")
            return expr
        if token.kind == "end":
            raise ExpressionError("unexpected end of condition")
        raise ExpressionError(f"unexpected token {token.value!r} at {token.pos}")


@lru_cache(maxsize=1024)
def compile_condition(text: str) -> Expr:
    if not isinstance(text, str) or not text.strip():
        raise ExpressionError("condition must be a non-empty string")
    return _Parser(tokenize(text)).parse()


# ---------- Evaluation ----------
BINARY_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "===": operator.eq,
    "!=": operator.ne,
    "!==": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
}


def _numeric(value: Any, op: str) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"operator {op!r} needs a number, got {type(value).__name__}")
    return value


def _eval(node: Expr, env: Mapping[str, Any]) -> Any:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Variable):
        if node.name not in env:
            raise NameError(f"unknown symbol {node.name!r}")
        return env[node.name]
    if isinstance(node, UnaryOp):
        value = _eval(node.operand, env)
        if node.op == "!":
            return not value
        value = _numeric(value, node.op)
        return -value if node.op == "-" else value
    if isinstance(node, MembershipTest):
        container = _eval(node.container, env)
        if not isinstance(container, (frozenset, set, list, tuple, str)):
            raise TypeError(f"cannot test membership in {type(container).__name__}")
        found = _eval(node.item, env) in container
        return not found if node.negated else found
    if isinstance(node, BinaryOp):
        if node.op == "&&":
            return bool(_eval(node.left, env)) and bool(_eval(node.right, env))
        if node.op == "||":
            return bool(_eval(node.left, env)) or bool(_eval(node.right, env))
        left = _eval(node.left, env)
        right = _eval(node.right, env)
        if node.op in ("==", "===", "!=", "!=="):
            return BINARY_OPERATORS[node.op](left, right)
        if node.op in ("<", "<=", ">", ">=") and isinstance(left, str) and isinstance(right, str):
            return BINARY_OPERATORS[node.op](left, right)
        return BINARY_OPERATORS[node.op](_numeric(left, node.op), _numeric(right, node.op))
    raise ExpressionError(f"unknown expression node {node!r}")


def condition_env(state: Any) -> Dict[str, Any]:
    env: Dict[str, Any] = {key: getattr(state, key) for key in STAT_KEYS}
    env["flags"] = frozenset(state.flags)
    env["location"] = state.location
    return env


def evaluate(condition: Optional[str], state: Any) -> bool:
    """Evaluate ``condition`` against ``state``; failures count as ``False``."""
    if not isinstance(condition, str):
        logger.warning("Condition %r is not a string.", condition)
        return False
    try:
        tree = compile_condition(condition)
        return bool(_eval(tree, condition_env(state)))
    except (ExpressionError, NameError, TypeError, ZeroDivisionError) as exc:
        logger.warning("Condition %r failed: %s", condition, exc)
        return False
    except RecursionError:
        logger.warning("Condition %r is too long to evaluate.", condition)
        return False


def referenced_symbols(tree: Expr) -> List[str]:
    """Return variable names used by a compiled condition, in first-seen order."""
    seen: List[str] = []
    pending: List[Expr] = [tree]
    while pending:
        node = pending.pop()
        if isinstance(node, Variable):
            if node.name not in seen:
                seen.append(node.name)
        elif isinstance(node, UnaryOp):
            pending.append(node.operand)
        elif isinstance(node, BinaryOp):
            pending.extend((node.right, node.left))
        elif isinstance(node, MembershipTest):
            pending.extend((node.container, node.item))
    return seen


def check_condition(condition: Any) -> List[str]:
    """Static check used by catalog validation: parse errors and unknown symbols."""
    if not isinstance(condition, str):
        return [f"condition must be a string, got {type(condition).__name__}."]
    try:
        tree = compile_condition(condition)
    except ExpressionError as exc:
        return [f"malformed condition {condition!r}: {exc}."]
    unknown = [name for name in referenced_symbols(tree) if name not in SYMBOLS]
    if unknown:
        return [f"condition {condition!r} uses unknown symbol(s): {', '.join(unknown)}."]
    return []
