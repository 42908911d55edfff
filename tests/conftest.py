"""Shared pytest fixtures for wirebind tests."""

import pytest

from wirebind.container import Container
from wirebind.lock_mode import LockMode


@pytest.fixture()
def container() -> Container:
    """Default root container with per-entity locking."""
    return Container()


@pytest.fixture()
def unlocked_container() -> Container:
    """Container with singleton locking disabled."""
    return Container(lock_mode=LockMode.NONE)
