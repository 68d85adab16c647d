"""Shared pytest configuration and suite marker assignment."""

from __future__ import annotations

from pathlib import Path

import pytest

_SUITE_MARKERS = {
    "e2e_tests": pytest.mark.e2e,
    "integration_tests": pytest.mark.integration,
    "unit_tests": pytest.mark.unit,
}


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Attach suite markers based on the directory a test lives in."""
    del config
    for item in items:
        parts = set(Path(str(item.fspath)).parts)
        for directory, marker in _SUITE_MARKERS.items():
            if directory in parts:
                item.add_marker(marker)
                break
