#!/usr/bin/env python3
"""
Lifeline terminal runner.
- Renders the current node, a status line and the available options.
- Enter continues narrative beats; numbers pick decision options.
- R restarts, H shows history, Q quits.
Usage: python3 -m lifeline.play [catalog.json] [--seed N] [--settings settings.json]
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
import textwrap
from typing import Callable, List, Optional, Sequence

from lifeline.catalog import Catalog, load_catalog, resolve_catalog_path
from lifeline.interpreter import OptionView, StoryEngine
from lifeline.routing import RoutingError
from lifeline.settings import SETTINGS_PATH, load_settings
from lifeline.state import LOCATION_SKILLS, GameState, format_stat
from lifeline.text import node_text, render_text

LOG_FORMAT = "%(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    root = logging.getLogger("lifeline")
    if root.handlers:
        root.setLevel(level)
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)


def emit_print(*args, **kwargs) -> None:
    print(*args, **kwargs)


def emit_wrapped(text: str, width: int) -> None:
    for paragraph in text.split("\n"):
        if paragraph.strip():
            for line in textwrap.wrap(paragraph, width=width):
                emit_print(line)
        else:
            emit_print("")


def render_profile(catalog: Catalog, state: GameState, width: int) -> None:
    """Persona and location blurbs shown at the top of every screen."""
    for name, info in (
        (state.persona, catalog.persona_info.get(state.persona)),
        (state.location, catalog.location_info.get(state.location)),
    ):
        if info:
            emit_wrapped(f"{name}: {info}", width)
        else:
            emit_print(name)


def render_location_skill(catalog: Catalog, state: GameState) -> None:
    skill = LOCATION_SKILLS.get(state.location)
    if skill is None:
        return
    key, label = skill
    _, high = catalog.bounds.get(key, (0, 0))
    emit_print(f"{label} ({key}): {format_stat(state.stat(key))} / {format_stat(high)}")


def render_state(engine: StoryEngine, state: GameState) -> List[OptionView]:
    width = engine.settings.line_width
    catalog = engine.catalog
    node = catalog.node(state.node)
    title = f"{catalog.title} v{catalog.version}" if catalog.version else catalog.title
    emit_print("\n" + "=" * width)
    emit_print(f"{title} [{state.node}]")
    render_profile(catalog, state, width)
    emit_print("-" * width)
    if node is None:
        emit_print(f"[!] Invalid node: {state.node}")
        return []

    emit_wrapped(render_text(node_text(node, state), state), width)
    emit_print("")
    for line in textwrap.wrap(state.summary(), width=width):
        emit_print(line)
    render_location_skill(catalog, state)
    emit_print("-" * width)

    if state.is_terminal:
        render_outcome(state, width)
        return []

    views = engine.available_options(state)
    for idx, view in enumerate(views, start=1):
        if view.locked:
            emit_print(f"  {idx}. [locked: {view.reason}] {view.label}")
        else:
            emit_print(f"  {idx}. {view.label}")
    if catalog.node_type(state.node) == "narrative" or state.feedback_queue:
        emit_print("  [Enter] Continue")
    emit_print("  R. Restart    H. History    Q. Quit")
    return views


def render_outcome(state: GameState, width: int) -> None:
    emit_print(f"*** {state.outcome or 'No ending matched'} ***")
    if state.outcome_description:
        emit_wrapped(state.outcome_description, width)
    emit_print("")
    emit_print(f"Literacy Score: {state.literacy_score} / {state.max_literacy_score}")
    for detail in state.literacy_details:
        emit_print(f"  + {detail.dimension or detail.id}")
        if detail.explanation:
            for line in textwrap.wrap(detail.explanation, width=width - 4):
                emit_print(f"    {line}")
    emit_print("  R. Restart    Q. Quit")


def show_history(state: GameState) -> None:
    if not state.history:
        emit_print("No history yet.")
        return
    emit_print("\n=== History ===")
    for idx, entry in enumerate(state.history, start=1):
        emit_print(f"{idx}. {entry.node} | {entry.choice or '—'}")


def run(engine: StoryEngine, read_input: Callable[[str], str] = input) -> GameState:
    state = engine.initial_state()
    while True:
        views = render_state(engine, state)
        try:
            raw = read_input("> ").strip()
        except EOFError:
            return state
        choice = raw.lower()
        if choice == "q":
            return state
        if choice == "r":
            state = engine.initial_state()
            continue
        if choice == "h":
            show_history(state)
            continue
        if state.is_terminal:
            emit_print("The story is over. Press R to restart or Q to quit.")
            continue
        if not choice:
            state = engine.continue_story(state)
            continue
        if not choice.isdigit() or not (1 <= int(choice) <= len(views)):
            emit_print("Pick a valid option number.")
            continue
        view = views[int(choice) - 1]
        if view.locked:
            emit_print(f"[!] That option is locked ({view.reason}).")
            continue
        state = engine.apply_option(state, view.option)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play a Lifeline story catalog in the terminal.")
    parser.add_argument("catalog", nargs="?", default=None, help="Path to the catalog JSON file.")
    parser.add_argument("--settings", default=str(SETTINGS_PATH), help="Path to settings JSON.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs.")
    parser.add_argument("--debug", action="store_true", help="Log routing and scoring decisions.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.settings)
    if args.seed is not None:
        settings.seed = args.seed
    configure_logging("DEBUG" if args.debug else settings.log_level)

    catalog_path = resolve_catalog_path(args.catalog)
    try:
        catalog = load_catalog(catalog_path)
    except (OSError, ValueError) as exc:
        emit_print(f"[!] Could not load {catalog_path}: {exc}")
        return 1

    engine = StoryEngine(catalog, settings, rng=random.Random(settings.seed))
    try:
        run(engine)
    except RoutingError as exc:
        emit_print(f"[!] {exc}")
        return 2
    except KeyboardInterrupt:
        emit_print("\n[Interrupted] Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
