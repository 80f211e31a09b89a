"""
Where hurl keeps its config file and session records.
"""

import os
import re
from pathlib import Path

APP_NAME = "hurl"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _base_dir(override_var: str, xdg_var: str, fallback: str) -> Path:
    override = os.getenv(override_var)
    if override:
        return Path(override)
    xdg = os.getenv(xdg_var)
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / fallback / APP_NAME


def config_dir() -> Path:
    return _base_dir("HURL_CONFIG_DIR", "XDG_CONFIG_HOME", ".config")


def data_dir() -> Path:
    return _base_dir("HURL_DATA_DIR", "XDG_DATA_HOME", os.path.join(".local", "share"))


def config_path() -> Path:
    return config_dir() / "config.yaml"


def session_dir() -> Path:
    return data_dir() / "sessions"


def make_safe_pathname(name: str) -> str:
    """Replace anything that is not a plain filename character with '_'."""
    safe = _UNSAFE_CHARS.sub("_", name)
    if safe in ("", ".", ".."):
        safe = safe.replace(".", "_") or "_"
    return safe


def session_path(name: str) -> Path:
    return session_dir() / f"{make_safe_pathname(name)}.json"
