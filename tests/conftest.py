import pytest
import structlog

from reconciler.infrastructure.config import get_settings


@pytest.fixture(autouse=True)
def _reset_global_config():
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()
