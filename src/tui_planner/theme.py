"""Chart colors, read from the ``colors`` section of the settings.

Defaults come from ``default_settings.yaml``; a project's
``.tui-planner/settings.yaml`` can override single entries.
"""

from __future__ import annotations

import sys
from typing import Any, NamedTuple

from tui_planner.config import load_settings


class ColorPair(NamedTuple):
    """A pair of colors for dark and light themes."""

    dark: str
    light: str

    def resolve(self, is_dark: bool) -> str:
        return self.dark if is_dark else self.light


# ── Module-level variables (populated by _apply) ──────────────────

GANTT_HEADER: ColorPair
GANTT_TODAY_MARKER: ColorPair
GANTT_BAR_DONE: ColorPair
GANTT_BAR_OPEN: ColorPair
GANTT_PREVIEW: ColorPair
GANTT_SUMMARY: ColorPair
GANTT_BAND_BG: ColorPair
GANTT_BASE_BG: ColorPair
GANTT_HIGHLIGHT_BG: ColorPair
GANTT_WEEKEND_BG: ColorPair
GANTT_HOLIDAY_BG: ColorPair


def _pair(d: Any, fallback: str = "white") -> ColorPair:
    """Convert a {dark: ..., light: ...} dict to a ColorPair."""
    if not isinstance(d, dict):
        d = {}
    return ColorPair(str(d.get("dark", fallback)), str(d.get("light", fallback)))


def _apply(colors: dict) -> None:
    mod = sys.modules[__name__]
    mod.GANTT_HEADER = _pair(colors.get("header"))
    mod.GANTT_TODAY_MARKER = _pair(colors.get("today_marker"), "red")
    mod.GANTT_BAR_DONE = _pair(colors.get("bar_done"), "green")
    mod.GANTT_BAR_OPEN = _pair(colors.get("bar_open"), "blue")
    mod.GANTT_PREVIEW = _pair(colors.get("preview"), "yellow")
    mod.GANTT_SUMMARY = _pair(colors.get("summary"), "grey50")
    mod.GANTT_BAND_BG = _pair(colors.get("band_bg"), "grey11")
    mod.GANTT_BASE_BG = _pair(colors.get("base_bg"), "grey7")
    mod.GANTT_HIGHLIGHT_BG = _pair(colors.get("highlight_bg"), "grey23")
    mod.GANTT_WEEKEND_BG = _pair(colors.get("weekend_bg"), "grey15")
    mod.GANTT_HOLIDAY_BG = _pair(colors.get("holiday_bg"), "grey19")


def apply_settings(settings: dict[str, Any]) -> None:
    """Apply the ``colors`` section of merged settings."""
    colors = settings.get("colors", {})
    _apply(colors if isinstance(colors, dict) else {})


# Apply default colors on module import
apply_settings(load_settings())


def is_dark(app: Any) -> bool:
    """Whether *app* currently shows a dark theme."""
    current = getattr(app, "current_theme", None)
    if current is not None:
        return bool(current.dark)
    return bool(getattr(app, "dark", True))
