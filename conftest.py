"""Root pytest configuration for sibling-pool.

Every collected item gets exactly one size marker so `-m small` and
`-m medium` select cleanly. The size comes from the tests/ subdirectory an
item lives in; doctests collected from src/sibling_pool are unit-sized.
Fixtures live in tests/conftest.py.
"""

from __future__ import annotations

from pathlib import Path

import pytest


SIZE_BY_DIRECTORY = {'small': 'small', 'medium': 'medium', 'large': 'large', 'src': 'small'}


def size_for(path: Path) -> str | None:
    """Return the size marker name for a collected file, or None if unsized.

    The innermost recognised directory wins, so src/ doctests are small even
    when the checkout itself sits under a directory named like a size.
    """
    for part in reversed(path.parts[:-1]):
        if part in SIZE_BY_DIRECTORY:
            return SIZE_BY_DIRECTORY[part]
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach a size marker to items that do not declare one."""
    declared = set(SIZE_BY_DIRECTORY.values())
    for item in items:
        if any(marker.name in declared for marker in item.iter_markers()):
            continue
        size = size_for(item.path)
        if size is not None:
            item.add_marker(getattr(pytest.mark, size))
