"""Core test fixtures for narration engine tests."""

import pytest

from narration_engine.config import Settings, get_settings
from tests.factories import FakeTransport, ManualSleep, make_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """get_settings() is cached; keep environment changes test-local."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Strict settings with default pacing."""
    return make_settings()


@pytest.fixture
def lenient_settings() -> Settings:
    """Settings that log misuse instead of raising."""
    return make_settings(strict_state=False)


@pytest.fixture
def manual_sleep() -> ManualSleep:
    return ManualSleep()


@pytest.fixture
def transport() -> FakeTransport:
    """Transport with no scripted streams; tests add their own."""
    return FakeTransport()
