"""Node text selection and stat placeholder substitution."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from lifeline.expressions import STAT_KEYS
from lifeline.state import GameState, format_stat

PLACEHOLDER_PATTERN = re.compile(r"\{(" + "|".join(STAT_KEYS) + r")\}")


def node_text(node: Optional[Mapping[str, Any]], state: GameState) -> str:
    if not node:
        return ""
    text = node.get("text") or ""
    by_persona = node.get("text_by_persona")
    if isinstance(by_persona, Mapping):
        text = by_persona.get(state.persona) or text
    by_location = node.get("text_by_location")
    if isinstance(by_location, Mapping):
        text = by_location.get(state.location) or text
    return text


def render_text(text: str, state: GameState) -> str:
    if not text or "{" not in text:
        return text
    return PLACEHOLDER_PATTERN.sub(lambda match: format_stat(state.stat(match.group(1))), text)
