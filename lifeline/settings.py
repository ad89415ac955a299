"""Engine settings for Lifeline sessions."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

_BASE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = _BASE_DIR / "settings.json"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger(__name__)


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


@dataclass
class EngineSettings:
    """Interpreter and runner configuration loaded from ``settings.json``."""

    start_node: str = "DAY0_LOCATION"
    max_hops: int = 500
    seed: Optional[int] = None
    line_width: int = 80
    log_level: str = "WARNING"

    def clamp(self) -> "EngineSettings":
        start = str(self.start_node or "").strip()
        self.start_node = start or "DAY0_LOCATION"
        self.max_hops = int(_clamp(int(self.max_hops), 1, 100_000))
        self.line_width = int(_clamp(int(self.line_width), 40, 160))
        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            level = "WARNING"
        self.log_level = level
        if self.seed is not None:
            self.seed = int(self.seed)
        return self

    def copy(self) -> "EngineSettings":
        return EngineSettings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "EngineSettings":
        if not isinstance(data, dict):
            return cls()

        def _as_int(key: str, default: Optional[int]) -> Optional[int]:
            value = data.get(key, default)
            if value is None:
                return default
            try:
                return int(value)
            except (TypeError, ValueError):
                return default

        settings = cls(
            start_node=str(data.get("start_node", "DAY0_LOCATION")),
            max_hops=_as_int("max_hops", 500),
            seed=_as_int("seed", None),
            line_width=_as_int("line_width", 80),
            log_level=str(data.get("log_level", "WARNING")),
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> EngineSettings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return EngineSettings()
    except (OSError, json.JSONDecodeError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return EngineSettings()
    return EngineSettings.from_dict(data)
