"""Shared fixtures for mptools tests."""

import pytest

from mpbuilder import write_mp


@pytest.fixture
def make_mp(tmp_path):
    """Factory writing a synthetic .mp file into tmp_path."""
    def _make(name: str = "model.mp", **kwargs):
        return write_mp(tmp_path / name, **kwargs)
    return _make


@pytest.fixture
def mp_file(make_mp):
    """Three populations, five time steps, three iterations."""
    return make_mp()


@pytest.fixture(scope="session")
def example_mp(tmp_path_factory):
    """263 populations, 100 time steps, 1000 iterations."""
    path = tmp_path_factory.mktemp("example") / "example.mp"
    names = tuple(f"Pop {i}" for i in range(1, 264))
    return write_mp(path, names=names, duration=100, iterations=1000)
