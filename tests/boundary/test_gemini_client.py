"""
Tests for GeminiClient with a mocked google-genai client.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from studyspark.boundary.genai.gemini_client import GeminiClient
from studyspark.core.exceptions import ModelProviderError


@pytest.fixture
def genai_client():
    client = MagicMock()
    client.aio.files.upload = AsyncMock(
        return_value=SimpleNamespace(uri="https://generativelanguage.googleapis.com/v1beta/files/xyz")
    )
    client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text='{"quiz": []}'))
    return client


@pytest.fixture
def gemini(genai_client):
    return GeminiClient(api_key="test-key", model_id="gemini-2.0-flash", client=genai_client)


async def test_upload_returns_uri(gemini, genai_client):
    handle = await gemini.upload_file("/tmp/notes.pdf")

    assert handle.endswith("/files/xyz")
    kwargs = genai_client.aio.files.upload.await_args.kwargs
    assert kwargs["file"] == "/tmp/notes.pdf"
    assert kwargs["config"].mime_type == "application/pdf"


async def test_upload_without_uri_raises(gemini, genai_client):
    genai_client.aio.files.upload.return_value = SimpleNamespace(uri=None)

    with pytest.raises(ModelProviderError):
        await gemini.upload_file("/tmp/notes.pdf")


async def test_generate_requests_json(gemini, genai_client):
    text = await gemini.generate_json("https://example/files/xyz", "Make a quiz")

    assert text == '{"quiz": []}'
    kwargs = genai_client.aio.models.generate_content.await_args.kwargs
    assert kwargs["model"] == "gemini-2.0-flash"
    assert kwargs["config"].response_mime_type == "application/json"
    assert kwargs["contents"][1] == "Make a quiz"


async def test_empty_response_raises(gemini, genai_client):
    genai_client.aio.models.generate_content.return_value = SimpleNamespace(text="")

    with pytest.raises(ModelProviderError):
        await gemini.generate_json("https://example/files/xyz", "Make a quiz")
