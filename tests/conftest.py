"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from storyframe.observability import close_file_logging, configure_logging


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> Iterator[None]:
    """Keep console logging at WARNING for the whole test session."""
    configure_logging(verbosity=0)
    yield
    close_file_logging()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
