"""
Shared pytest fixtures and configuration for keysentinel tests.

This module provides:
- Settings / log-context cleanup for test isolation
- Mock client and executor fixtures (doubles live in tests._support.doubles)
- A temporary YAML config writer

Usage:
    def test_something(client, mock1):
        sentinel = Sentinel(client)
        sentinel.add(["1"], mock1)
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog

from keysentinel.core.logging import clear_context
from keysentinel.core.settings import reset_settings
from tests._support.doubles import MockClient, MockExecutor


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings, SENTINEL_* env vars and logging config around each test."""
    for name in list(os.environ):
        if name.startswith("SENTINEL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(Path(__file__).parent)
    reset_settings()
    clear_context()
    yield
    reset_settings()
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Doubles
# =============================================================================


@pytest.fixture
def client() -> MockClient:
    return MockClient()


@pytest.fixture
def mock1() -> MockExecutor:
    return MockExecutor("mock1")


@pytest.fixture
def mock2() -> MockExecutor:
    return MockExecutor("mock2")


@pytest.fixture
def tmp_config(tmp_path: Path) -> Callable[[str], Path]:
    """Write YAML text to a temporary config file and return its path."""

    def _write(content: str) -> Path:
        path = tmp_path / "sentinel.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    return _write
