"""Common test fixtures."""

import pytest

from unwrap_or_ai.schema import clear_schema_cache


@pytest.fixture(autouse=True)
def fresh_schema_cache():
    """Give every test an empty schema cache."""
    clear_schema_cache()
    yield
    clear_schema_cache()
