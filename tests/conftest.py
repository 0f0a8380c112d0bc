"""Shared fixtures: every test starts with an empty registry and default config."""

import pytest

from looseleaf import on_change, reset_global_config, reset_registry


@pytest.fixture(autouse=True)
def _isolated_runtime():
    yield
    reset_registry()
    reset_global_config()


@pytest.fixture
def changes():
    """Collect every Change reported while the test runs."""
    collected = []
    stop = on_change(collected.append)
    yield collected
    stop()
