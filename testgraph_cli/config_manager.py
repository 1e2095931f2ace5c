"""Configuration manager for TestGraph CLI using TOML files.

Layout of ``~/.testgraph/config.toml``::

    [selection]
    extensions = [".py"]
    test_prefixes = ["test"]
    test_suffixes = ["Test", "Tests", "Spec", "かどうか", "テスト"]

    [analysis]
    backend = "ast"
    git_base = "HEAD"
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .parser import BACKENDS as ANALYSIS_BACKENDS
from .resolver import DEFAULT_CONTAINER_SUFFIXES, DEFAULT_NAME_PREFIXES

logger = logging.getLogger(__name__)


def _config_file() -> Path:
    # Looked up at call time so tests can repoint BASE_DIR.
    from . import config

    return config.CONFIG_FILE


DEFAULT_SELECTION: Dict[str, List[str]] = {
    "extensions": [".py"],
    "test_prefixes": list(DEFAULT_NAME_PREFIXES),
    "test_suffixes": list(DEFAULT_CONTAINER_SUFFIXES),
}

DEFAULT_ANALYSIS: Dict[str, str] = {
    "backend": "ast",
    "git_base": "HEAD",
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    config_file = _config_file()
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_file, exc)
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    config_file = _config_file()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config_file, exc)
        return False


def load_selection_config() -> Dict[str, List[str]]:
    """Return the ``[selection]`` section merged over the defaults."""
    merged = {key: list(value) for key, value in DEFAULT_SELECTION.items()}
    section = load_full_config().get("selection", {})
    for key in DEFAULT_SELECTION:
        value = section.get(key)
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            merged[key] = value
        elif value is not None:
            logger.warning("Ignoring invalid [selection] %s = %r", key, value)
    return merged


def load_analysis_config() -> Dict[str, str]:
    """Return the ``[analysis]`` section merged over the defaults."""
    merged = dict(DEFAULT_ANALYSIS)
    section = load_full_config().get("analysis", {})
    backend = section.get("backend")
    if backend in ANALYSIS_BACKENDS:
        merged["backend"] = backend
    elif backend is not None:
        logger.warning("Ignoring unknown analysis backend %r", backend)
    git_base = section.get("git_base")
    if isinstance(git_base, str) and git_base:
        merged["git_base"] = git_base
    return merged


def save_selection_config(
    extensions: Optional[List[str]] = None,
    test_prefixes: Optional[List[str]] = None,
    test_suffixes: Optional[List[str]] = None,
) -> bool:
    """Update the ``[selection]`` section. ``None`` leaves a key untouched.

    Preserves ``[analysis]`` and any other sections in the file.
    """
    config = load_full_config()
    section = config.setdefault("selection", {})
    if extensions is not None:
        section["extensions"] = extensions
    if test_prefixes is not None:
        section["test_prefixes"] = test_prefixes
    if test_suffixes is not None:
        section["test_suffixes"] = test_suffixes
    return _save_full_config(config)


def save_analysis_config(backend: Optional[str] = None, git_base: Optional[str] = None) -> bool:
    if backend is not None and backend not in ANALYSIS_BACKENDS:
        raise ValueError(
            f"Unknown analysis backend '{backend}'. Choose one of: {', '.join(ANALYSIS_BACKENDS)}"
        )
    config = load_full_config()
    section = config.setdefault("analysis", {})
    if backend is not None:
        section["backend"] = backend
    if git_base is not None:
        section["git_base"] = git_base
    return _save_full_config(config)


def clear_config() -> bool:
    """Remove ``[selection]`` and ``[analysis]``, resetting to defaults."""
    config = load_full_config()
    config.pop("selection", None)
    config.pop("analysis", None)
    return _save_full_config(config)
