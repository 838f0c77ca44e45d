import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo process-wide structlog configuration made by CLI invocations."""
    yield
    structlog.reset_defaults()
