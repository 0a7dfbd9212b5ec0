"""Shared fixtures for sibling-pool tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sibling_pool.environment import (
    MULTIPLY_ENV,
    PID_FILE_ENV,
    PROCESSORS_ENV,
    TOTAL_GROUPS_ENV,
    WORKER_INDEX_ENV,
)
from sibling_pool.registry import PidRegistry


if TYPE_CHECKING:
    from pathlib import Path


POOL_ENV_KEYS = (PROCESSORS_ENV, MULTIPLY_ENV, PID_FILE_ENV, WORKER_INDEX_ENV, TOTAL_GROUPS_ENV)


@pytest.fixture(autouse=True)
def clean_pool_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove pool variables inherited from the environment running the tests."""
    for key in POOL_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def pid_file(tmp_path: Path) -> Path:
    """Return a path for a registry file that does not exist yet."""
    return tmp_path / 'pids'


@pytest.fixture
def registry(pid_file: Path) -> PidRegistry:
    """Return a registry bound to a fresh path."""
    return PidRegistry(pid_file)
