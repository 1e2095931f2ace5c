"""Pytest configuration and fixtures for TestGraph CLI tests."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

# Keep the user's ~/.testgraph/config.toml out of the test run; config values
# are read when testgraph_cli.config is first imported.
os.environ["TESTGRAPH_HOME"] = tempfile.mkdtemp(prefix="testgraph-home-")

import pytest  # noqa: E402

from testgraph_cli.call_graph import ReverseCallGraph  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_config(temp_dir: Path, monkeypatch) -> Path:
    """Point the TOML config at a temporary file."""
    config_file = temp_dir / "config.toml"
    monkeypatch.setattr("testgraph_cli.config.BASE_DIR", temp_dir)
    monkeypatch.setattr("testgraph_cli.config.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample calculator project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_source_roots(sample_project_path: Path):
    return [sample_project_path / "src", sample_project_path / "tests"]


@pytest.fixture
def add_diff() -> str:
    """Diff touching the body of Calculator.add."""
    return """diff --git a/src/calculator.py b/src/calculator.py
--- a/src/calculator.py
+++ b/src/calculator.py
@@ -6 +6 @@ class Calculator:
-        return a + b
+        return b + a
"""


@pytest.fixture
def helper_diff() -> str:
    """Diff touching only helper_b."""
    return """diff --git a/src/helper.py b/src/helper.py
--- a/src/helper.py
+++ b/src/helper.py
@@ -7 +7 @@ def helper_b():
-    calc = Calculator()
+    calc = Calculator()  # modified
"""


@pytest.fixture
def multiply_diff() -> str:
    """Diff touching Calculator.multiply, which nothing calls."""
    return """diff --git a/src/calculator.py b/src/calculator.py
--- a/src/calculator.py
+++ b/src/calculator.py
@@ -9 +9 @@ class Calculator:
-        return a * b
+        return b * a
"""


@pytest.fixture
def calculator_graph() -> ReverseCallGraph:
    """Reverse graph of the calculator scenario, built by hand."""
    graph = ReverseCallGraph()
    graph.add_edge("CalculatorTest.testAdd", "Calculator.add")
    graph.add_edge("helperB", "Calculator.add")
    graph.add_edge("CalculatorTest.testHelper", "helperB")
    return graph


@pytest.fixture
def sample_python_code() -> str:
    """Sample Python code for testing parser."""
    return '''"""Sample module for testing."""

def hello(name: str) -> str:
    """Say hello."""
    return f"Hello, {name}!"

class Calculator:
    """Simple calculator."""

    def __init__(self):
        self.total = 0

    def add(self, a: int, b: int) -> int:
        """Add two numbers."""
        return a + b

    def multiply(self, a: int, b: int) -> int:
        """Multiply two numbers."""
        result = self.add(a, 0)  # Call to add
        for _ in range(b - 1):
            result = self.add(result, a)
        return result


def make_calculator():
    return Calculator()
'''
