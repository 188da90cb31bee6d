"""Pytest configuration helpers for the Herodex project.

``pytest`` imports ``tests.conftest`` before collecting test modules, which
gives us a hook to put the repository root on ``sys.path`` first.
"""

from __future__ import annotations

import pytest

from tests import _ensure_repo_on_path


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()
