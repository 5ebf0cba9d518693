"""
Shared pytest fixtures: environment, cached settings and a mocked upstream.
"""
import base64
import io
import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest
from PIL import Image

from relay.config import get_settings
from relay.upstream import get_client

TEST_MODELS = "vision/model-a,vision/model-b"


def make_completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_status_error(status_code):
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    error_cls = openai.RateLimitError if status_code == 429 else openai.APIStatusError
    return error_cls(f"upstream returned {status_code}", response=response, body=None)


def png_base64():
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 120, 40)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("utf-8")


@pytest.fixture
def mock_env():
    env_vars = {
        "OPENROUTER_API_KEY": "test-openrouter-key",
        "RELAY_MODELS": TEST_MODELS,
    }
    with patch.dict(os.environ, env_vars, clear=False):
        get_settings.cache_clear()
        get_client.cache_clear()
        yield env_vars
    get_settings.cache_clear()
    get_client.cache_clear()


@pytest.fixture
def upstream(mock_env):
    """Chat client whose chat.completions.create is a MagicMock."""
    chat_client = MagicMock()
    with patch("relay.upstream.get_client", return_value=chat_client):
        yield chat_client.chat.completions.create


@pytest.fixture
def api_client(upstream):
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as c:
        yield c
