"""Project configuration management using tomlkit."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any

import tomlkit
import yaml

from tui_planner.models import DATE_FORMAT_PRESETS, DEFAULT_DATE_FORMAT, ProjectConfig

logger = logging.getLogger(__name__)

CONFIG_DIR = ".tui-planner"
CONFIG_FILE = "config.toml"
SETTINGS_FILE = "settings.yaml"


def _get_config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / CONFIG_FILE


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def load_config(project_dir: Path) -> ProjectConfig:
    """Load project configuration from .tui-planner/config.toml."""
    config_path = _get_config_path(project_dir)
    config = ProjectConfig()

    if not config_path.exists():
        return config

    try:
        doc = tomlkit.parse(config_path.read_text(encoding="utf-8"))
    except Exception as e:
        logger.warning("ignoring unreadable %s: %s", config_path, e)
        return config

    project_section = doc.get("project", {})
    config.name = str(project_section.get("name", ""))
    config.owner_id = str(project_section.get("owner_id", config.owner_id)) or config.owner_id
    raw_fmt = str(project_section.get("date_format", DEFAULT_DATE_FORMAT))
    config.date_format = raw_fmt if raw_fmt in DATE_FORMAT_PRESETS else DEFAULT_DATE_FORMAT

    gantt_section = doc.get("gantt", {})
    config.min_day_width = max(1, _int(gantt_section.get("min_day_width"), config.min_day_width))
    config.max_day_width = max(
        config.min_day_width, _int(gantt_section.get("max_day_width"), config.max_day_width)
    )
    day_width = _int(gantt_section.get("day_width"), config.day_width)
    config.day_width = max(config.min_day_width, min(config.max_day_width, day_width))

    store_section = doc.get("store", {})
    config.store_path = str(store_section.get("path", config.store_path))

    return config


def save_config(project_dir: Path, config: ProjectConfig) -> None:
    """Save project configuration to .tui-planner/config.toml."""
    config_path = _get_config_path(project_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    doc = tomlkit.document()

    project_table = tomlkit.table()
    project_table.add("name", config.name)
    project_table.add("owner_id", config.owner_id)
    project_table.add("date_format", config.date_format)
    doc.add("project", project_table)

    gantt_table = tomlkit.table()
    gantt_table.add("day_width", config.day_width)
    gantt_table.add("min_day_width", config.min_day_width)
    gantt_table.add("max_day_width", config.max_day_width)
    doc.add("gantt", gantt_table)

    store_table = tomlkit.table()
    store_table.add("path", config.store_path)
    doc.add("store", store_table)

    config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def store_dir(project_dir: Path, config: ProjectConfig) -> Path:
    """Absolute directory of the JSON document store."""
    path = Path(config.store_path)
    return path if path.is_absolute() else project_dir / path


# ── Settings (YAML) ─────────────────────────────────────────────

def _load_yaml(path: Path) -> dict:
    """Load a YAML file and return a dict (empty dict on error)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("ignoring unreadable %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (returns a new dict)."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val  # lists are replaced, not appended
    return result


def load_settings(project_dir: Path | None = None) -> dict[str, Any]:
    """Load settings from default_settings.yaml + optional project override.

    1. Load ``default_settings.yaml`` bundled with the package.
    2. If *project_dir* is given and ``{project_dir}/.tui-planner/settings.yaml``
       exists, deep-merge it on top of the defaults.
    3. Return the merged dict.
    """
    default_path = Path(__file__).parent / "default_settings.yaml"
    data = _load_yaml(default_path)

    if project_dir is not None:
        override_path = project_dir / CONFIG_DIR / SETTINGS_FILE
        if override_path.is_file():
            override = _load_yaml(override_path)
            if override:
                data = _deep_merge(data, override)

    return data


def get_holidays(settings: dict[str, Any]) -> list[date]:
    """Parse holiday date strings from settings into date objects."""
    raw = settings.get("holidays", [])
    holidays: list[date] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, date):
                holidays.append(item)
                continue
            try:
                holidays.append(date.fromisoformat(str(item)))
            except ValueError:
                logger.warning("ignoring invalid holiday %r", item)
    return holidays
