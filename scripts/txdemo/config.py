"""Settings and theme.

Defaults live here as module constants; `Settings.from_env()` lets
TXDEMO_* environment variables override them and the CLI overrides those.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "TXDEMO"

# Spinner redraw intervals in seconds
LOADING_TICK_INTERVAL = 0.08
RUNNER_TICK_INTERVAL = 0.1

# Pause between scripted steps of the bundled demonstrations
STEP_DELAY = 0.5

DEFAULT_LOG_FILE = Path(".txdemo") / "txdemo.log"

LOADING_TIPS = (
    "💡 Multi-document transactions need a resource that supports them",
    "💡 The first start may take a while",
    "💡 Subsequent runs will be much faster",
)

# Frames advance every tick; a tip stays up for this many frames
TIP_ROTATION_FRAMES = 30


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_level(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class Theme:
    """Palette used by the renderer. Passed explicitly, never global."""

    primary: str = "#7C3AED"
    secondary: str = "#10B981"
    warning: str = "#F59E0B"
    error: str = "#EF4444"
    muted: str = "#6B7280"
    text: str = "#F9FAFB"
    query: str = "#A78BFA"
    header_bg: str = "#374151"
    session_colors: dict[str, str] = field(
        default_factory=lambda: {
            "Session A": "#3B82F6",
            "Session B": "#EC4899",
            "Setup": "#8B5CF6",
            "Result": "#10B981",
        }
    )
    spinner_frames: tuple[str, ...] = (
        "⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏",
    )

    def spinner(self, frame: int) -> str:
        return self.spinner_frames[frame % len(self.spinner_frames)]

    def session_color(self, session: str) -> str:
        return self.session_colors.get(session, self.muted)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the app."""

    loading_interval: float = LOADING_TICK_INTERVAL
    runner_interval: float = RUNNER_TICK_INTERVAL
    step_delay: float = STEP_DELAY
    log_file: Path = DEFAULT_LOG_FILE
    log_level: int = logging.INFO
    loading_tips: tuple[str, ...] = LOADING_TIPS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            loading_interval=_env_float(_k("LOADING_INTERVAL"), LOADING_TICK_INTERVAL),
            runner_interval=_env_float(_k("RUNNER_INTERVAL"), RUNNER_TICK_INTERVAL),
            step_delay=_env_float(_k("STEP_DELAY"), STEP_DELAY),
            log_file=_env_path(_k("LOG_FILE"), DEFAULT_LOG_FILE),
            log_level=_env_level(_k("LOG_LEVEL"), logging.INFO),
        )
