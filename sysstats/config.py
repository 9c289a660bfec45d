"""Configuration loading for sysstats.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sysstats/config.toml → defaults only.
Command-line flags are applied on top by :mod:`sysstats.monitor`.
"""

from __future__ import annotations

import sys
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "samples": 10,
    "tdelay": 1,
    "log_level": "WARNING",
    "panels": {
        "system": True,
        "user": True,
        "graphics": False,
        "sequential": False,
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "sysstats" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Merge one level: overlay sub-keys into base sub-keys
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sysstats/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"sysstats: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sysstats: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"sysstats: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# sysstats configuration",
        "# Place this file at ~/.config/sysstats/config.toml",
        "",
        f"samples = {DEFAULT_CONFIG['samples']}",
        f"tdelay = {DEFAULT_CONFIG['tdelay']}",
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
        "",
        "[panels]",
    ]
    for key, enabled in DEFAULT_CONFIG["panels"].items():
        lines.append(f"{key} = {'true' if enabled else 'false'}")

    return "\n".join(lines) + "\n"


# ── Run parameters ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MonitorConfig:
    """Everything one monitoring run needs."""

    samples: int = 10
    tdelay: int = 1
    system: bool = True
    user: bool = True
    graphics: bool = False
    sequential: bool = False

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> MonitorConfig:
        """Build from a merged config dict, validating types and ranges.

        Raises:
            ValueError: On a non-table 'panels', a wrong type or a negative count.
        """
        panels = config.get("panels", {})
        if not isinstance(panels, Mapping):
            raise ValueError("'panels' must be a table")

        values: dict[str, Any] = {}
        for key in ("samples", "tdelay"):
            value = config.get(key, DEFAULT_CONFIG[key])
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"'{key}' must not be negative, got {value}")
            values[key] = value

        for key, default in DEFAULT_CONFIG["panels"].items():
            value = panels.get(key, default)
            if not isinstance(value, bool):
                raise ValueError(f"'panels.{key}' must be true or false, got {value!r}")
            values[key] = value

        return cls(**values)
