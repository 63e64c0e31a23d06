# uad: Lightweight YAML settings loader for the workspace.

from __future__ import annotations

import pathlib
from typing import Any, Dict, Optional

import yaml


SETTINGS_DIR = ".uad"
SETTINGS_NAMES = ("settings.yaml", "settings.yml")


def _read_mapping(path: pathlib.Path) -> Optional[Dict[str, Any]]:
    """Parse one YAML file; None when it cannot be read or parsed."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return None
    # uad: A file holding a list or a scalar counts as empty settings.
    return data if isinstance(data, dict) else {}


def load_settings(workspace: pathlib.Path) -> Dict[str, Any]:
    """
    Load workspace settings from .uad/settings.yaml, falling back to settings.yml.

    The first file that parses wins. Never raises; {} when nothing usable is found.
    """
    base = pathlib.Path(workspace) / SETTINGS_DIR
    for name in SETTINGS_NAMES:
        path = base / name
        if not path.is_file():
            continue
        data = _read_mapping(path)
        if data is not None:
            return data
    return {}


def settings_section(settings: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """Return settings[name] when it is a mapping, else {}."""
    section = (settings or {}).get(name) if isinstance(settings, dict) else None
    return section if isinstance(section, dict) else {}


def resolve_dir(workspace: pathlib.Path, configured: Optional[str], default: str) -> pathlib.Path:
    """Resolve a configured directory against the workspace; absolute paths are kept as-is."""
    raw = str(configured).strip() if configured else default
    p = pathlib.Path(raw)
    return p if p.is_absolute() else (pathlib.Path(workspace) / p)
