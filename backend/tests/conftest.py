import pytest

from concierge.core.config import get_settings


@pytest.fixture
def anyio_backend() -> str:
    """Force anyio-based tests to run with asyncio backend only."""

    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; start each test from the environment again."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
