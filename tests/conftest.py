"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips the 2..64 player sweeps)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine.models import Player


def make_players(count):
    """Players P1..Pn with ids p1..pn."""
    return [Player(f"p{i}", f"P{i}") for i in range(1, count + 1)]


@pytest.fixture
def players_abcd():
    """Four named players A-D."""
    return [Player("a", "A"), Player("b", "B"), Player("c", "C"), Player("d", "D")]


@pytest.fixture
def players_abc():
    """Three named players A-C."""
    return [Player("a", "A"), Player("b", "B"), Player("c", "C")]


@pytest.fixture
def temp_data_dir(tmp_path):
    """Empty data directory for a BracketStore."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return str(data_dir)


@pytest.fixture
def client(temp_data_dir, monkeypatch):
    """Flask test client writing to a temporary data directory."""
    from app import app
    monkeypatch.setitem(app.config, 'DATA_DIR', temp_data_dir)
    monkeypatch.setitem(app.config, 'MAX_SCORE', 13)
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
