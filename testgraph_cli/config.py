"""Configuration paths and selection defaults for TestGraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("TESTGRAPH_HOME", str(Path.home() / ".testgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
LOG_LEVEL = os.environ.get("TESTGRAPH_LOG_LEVEL", "WARNING").upper()

# Directories a project may keep its sources in, probed in order when no
# --source-root is given.
STANDARD_SOURCE_DIRS = ("src", "tests", "test")

# Load configuration from TOML file (if available)
from .config_manager import load_analysis_config, load_selection_config  # noqa: E402

_selection = load_selection_config()
_analysis = load_analysis_config()

SOURCE_EXTENSIONS = tuple(_selection["extensions"])
TEST_NAME_PREFIXES = tuple(_selection["test_prefixes"])
TEST_CONTAINER_SUFFIXES = tuple(_selection["test_suffixes"])

ANALYSIS_BACKEND = _analysis["backend"]
DEFAULT_GIT_BASE = _analysis["git_base"]
