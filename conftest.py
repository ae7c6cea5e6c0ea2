"""Top-level pytest hooks."""

from __future__ import annotations

from pathlib import Path
from typing import Any

_DIRECTORY_MARKERS = {
    "tests/unit/": "unit",
    "tests/property/": "property",
    "tests/integration/": "integration",
}


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:  # pragma: no cover
    """Apply directory markers so selection works even if a file forgets decorators."""
    import pytest

    root = Path(str(config.rootpath)).resolve()
    for item in items:
        try:
            rel_path = Path(str(item.fspath)).resolve().relative_to(root).as_posix()
        except ValueError:
            continue
        for prefix, marker in _DIRECTORY_MARKERS.items():
            if rel_path.startswith(prefix):
                item.add_marker(getattr(pytest.mark, marker))
                break
