import pytest
import structlog

from grocery_oms.infrastructure.config import get_settings


@pytest.fixture(autouse=True)
def _isolate_global_config():
    # The CLI configures structlog against the runner's temporary stderr
    # and caches settings; neither may leak into the next test.
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()
