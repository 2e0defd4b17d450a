"""Shared test fixtures.

No external services are needed: channels, aggregates and the HTTP app all
run in-process on the test's event loop.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sse_starlette.sse import AppStatus

from agentrender.settings import get_settings


@pytest.fixture(autouse=True)
def _reset_sse_app_status() -> Iterator[None]:
    """sse-starlette keeps process-wide exit state; give every test a fresh one."""
    AppStatus.should_exit = False
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit = False


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
