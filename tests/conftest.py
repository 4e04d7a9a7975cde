"""
Pytest configuration.

Ensures the src directory is on the path for imports, and keeps state and
config lookups away from the working tree.
"""

import sys
from pathlib import Path

import pytest

# Add src to path so imports work
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def state_path(tmp_path, monkeypatch):
    """A state file location inside tmp_path, also exported via the environment."""
    path = tmp_path / ".mediation" / "memory.json"
    monkeypatch.setenv("MEDIATION_STATE_PATH", str(path))
    return path
