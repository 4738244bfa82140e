"""Shared test fixtures for sanbao_stream."""

import pytest
from pydantic import SecretStr

from sanbao_stream.settings import Settings


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        environment="testing",
        debug=True,
        api_base_url="http://sanbao.test",
        api_token=SecretStr("test-token"),
    )
