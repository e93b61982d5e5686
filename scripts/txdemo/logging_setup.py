"""Logging configuration.

The terminal belongs to the TUI, so records go to a file and to the
Textual devtools console (`textual console`) instead of stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path

from textual.logging import TextualHandler


class _PackageFilter(logging.Filter):
    """Keep txdemo records; let third-party ones through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "txdemo" or record.name.startswith("txdemo."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(log_file: Path, level: int = logging.INFO) -> None:
    """Configure the root logger. Call once, before the app starts."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(fmt)
    fh.addFilter(_PackageFilter())
    root.addHandler(fh)

    th = TextualHandler()
    th.setLevel(level)
    th.setFormatter(fmt)
    th.addFilter(_PackageFilter())
    root.addHandler(th)

    logging.captureWarnings(True)
