# ABOUTME: Shared test fixtures for the Atmosphere dashboard test suite.
# ABOUTME: Provides settings with dummy credentials and a mock httpx client factory.

from unittest.mock import AsyncMock

import httpx
import pytest

from atmosphere.config import Settings


def mock_client(*responses: httpx.Response | Exception) -> httpx.AsyncClient:
    """Create a mock httpx.AsyncClient whose successive get() calls return or raise the given items."""
    mock = AsyncMock(spec=httpx.AsyncClient)
    mock.get.side_effect = list(responses)
    return mock


def json_response(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, json=data, request=httpx.Request("GET", "https://test"))


def text_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, text=text, request=httpx.Request("GET", "https://test"))


@pytest.fixture
def settings() -> Settings:
    return Settings(tomtom_api_key="test-key", infoclimat_auth="test-auth", infoclimat_c="test-c")
