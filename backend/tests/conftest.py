from collections.abc import Generator

import pytest

from sqldataaccess.core.config import settings


@pytest.fixture(autouse=True)
def server_default_timeout() -> Generator[None, None, None]:
    """Unit tests assume no configured default command timeout."""
    original = settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    settings.EXTERNAL_DB_STATEMENT_TIMEOUT = None
    yield
    settings.EXTERNAL_DB_STATEMENT_TIMEOUT = original
