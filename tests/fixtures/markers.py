"""Directory-based default marks.

Each test layer's conftest marks the items collected below it, unless the
item already carries the mark (for example from a module-level
``pytestmark``).
"""

from __future__ import annotations

from pathlib import Path

import pytest


def add_default_mark(items: list[pytest.Item], root: Path, marker: str) -> int:
    """Add ``marker`` to every item under ``root``; return how many were marked."""
    mark = getattr(pytest.mark, marker)
    marked = 0
    for item in items:
        if root not in item.path.resolve().parents:
            continue
        if any(m.name == marker for m in item.iter_markers()):
            continue
        item.add_marker(mark)
        marked += 1
    return marked
