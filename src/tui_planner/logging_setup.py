"""Logging configuration for the CLI and the terminal app."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE = "planner.log"


class _ConsoleNoiseFilter(logging.Filter):
    """Let tui_planner records through; other libraries only at ERROR and above."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("tui_planner"):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path | None = None,
    console_level: int | None = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    """Configure the root logger.

    - Console handler on stderr, filtered (skipped when *console_level* is
      None, e.g. while the full-screen app owns the terminal)
    - File handler ``planner.log`` in *log_dir*, if given

    Call this once, early.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if console_level is not None:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(fmt)
        ch.addFilter(_ConsoleNoiseFilter())
        root.addHandler(ch)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_dir / LOG_FILE), encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)


def level_from_name(name: str, default: int = logging.INFO) -> int:
    """Map a level name like ``"debug"`` to its numeric value."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default
