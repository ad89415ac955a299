"""Game state carried between interpreter calls."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from lifeline.expressions import STAT_KEYS

CORE_STATS = ("S", "R", "M", "SC", "HR")
SKILL_STATS = ("SA", "FM", "LA")

# Each location trains one hazard skill.
LOCATION_SKILLS = {
    "Coastal": ("SA", "Surge Awareness"),
    "River": ("FM", "Flood Management"),
    "Hill": ("LA", "Landslide Awareness"),
}


@dataclass(frozen=True)
class HistoryEntry:
    node: str
    choice: Optional[str] = None


@dataclass(frozen=True)
class LiteracyDetail:
    id: str
    dimension: Optional[str] = None
    explanation: Optional[str] = None


def risk_level(hr) -> str:
    try:
        value = float(hr)
    except (TypeError, ValueError):
        value = 0.0
    if value <= 0:
        return "Stable"
    if value <= 2:
        return "Elevated"
    return "Critical"


@dataclass
class GameState:
    node: str
    persona: str
    location: str

    S: float = 0
    R: float = 0
    M: float = 0
    SC: float = 0
    HR: float = 0

    SA: float = 0
    FM: float = 0
    LA: float = 0

    flags: List[str] = field(default_factory=list)
    routed: List[str] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)
    feedback_queue: List[str] = field(default_factory=list)
    router_return_node: Optional[str] = None

    outcome: Optional[str] = None
    outcome_description: Optional[str] = None
    literacy_score: Optional[float] = None
    literacy_details: List[LiteracyDetail] = field(default_factory=list)
    max_literacy_score: Optional[float] = None

    def copy(self) -> "GameState":
        return replace(
            self,
            flags=list(self.flags),
            routed=list(self.routed),
            history=list(self.history),
            feedback_queue=list(self.feedback_queue),
            literacy_details=list(self.literacy_details),
        )

    @property
    def is_terminal(self) -> bool:
        return self.literacy_score is not None

    def stat(self, key: str):
        if key not in STAT_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def set_stat(self, key: str, value) -> None:
        if key not in STAT_KEYS:
            raise KeyError(key)
        setattr(self, key, value)

    def stats(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in STAT_KEYS}

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def add_flags(self, flags: Iterable[str]) -> None:
        for flag in flags:
            if flag not in self.flags:
                self.flags.append(flag)

    def summary(self) -> str:
        core = " ".join(f"{key}:{format_stat(getattr(self, key))}" for key in CORE_STATS)
        skills = " ".join(f"{key}:{format_stat(getattr(self, key))}" for key in SKILL_STATS)
        flags = ", ".join(self.flags) or "—"
        return (
            f"{self.persona} @ {self.location} | {core} | SKILLS: {skills} | "
            f"RISK: {risk_level(self.HR)} | FLAGS: {flags}"
        )


def format_stat(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
