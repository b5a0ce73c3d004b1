"""Tests for the provider transport, with requests.post patched out."""

from unittest.mock import Mock

import pytest
import requests

from textpilot.core.errors import ConfigurationError, GenerationError
from textpilot.llm import client, provider_config


PAYLOAD = {
    "model": "test-model",
    "messages": [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hello"},
    ],
    "temperature": 0.2,
}


def _response(data=None, error=None):
    response = Mock()
    response.json.return_value = data
    response.raise_for_status.side_effect = error
    return response


@pytest.fixture
def post(monkeypatch):
    mock = Mock()
    monkeypatch.setattr(client.requests, "post", mock)
    return mock


def test_openai_compatible_request(post):
    post.return_value = _response({"choices": [{"message": {"content": "  Hi there  "}}]})

    assert client.send_request(PAYLOAD, provider="local") == "Hi there"

    url = post.call_args.args[0]
    body = post.call_args.kwargs["json"]
    assert url == provider_config.PROVIDERS["local"]["url"]
    assert body["stream"] is False
    assert body["messages"] == PAYLOAD["messages"]
    assert post.call_args.kwargs["timeout"] == provider_config.REQUEST_TIMEOUT_SECONDS


def test_bearer_key_for_hosted_provider(post, monkeypatch):
    monkeypatch.setattr(provider_config, "load_key", lambda path: "secret")
    post.return_value = _response({"choices": [{"message": {"content": "ok"}}]})

    client.send_request(PAYLOAD, provider="openai")

    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"


def test_anthropic_request_lifts_system_prompt(post, monkeypatch):
    monkeypatch.setattr(provider_config, "load_key", lambda path: "secret")
    post.return_value = _response({"content": [{"text": "Bonjour"}]})

    assert client.send_request(PAYLOAD, provider="anthropic") == "Bonjour"

    body = post.call_args.kwargs["json"]
    assert body["system"] == "Be brief."
    assert body["messages"] == [{"role": "user", "content": "Hello"}]
    assert body["max_tokens"] == provider_config.DEFAULT_MAX_TOKENS
    assert post.call_args.kwargs["headers"]["x-api-key"] == "secret"


def test_gemini_request_maps_contents(post, monkeypatch):
    monkeypatch.setattr(provider_config, "load_key", lambda path: "secret")
    post.return_value = _response({"candidates": [{"content": {"parts": [{"text": "Hallo"}]}}]})

    assert client.send_request(PAYLOAD, provider="gemini") == "Hallo"

    url = post.call_args.args[0]
    body = post.call_args.kwargs["json"]
    assert "test-model:generateContent" in url
    assert body["contents"] == [{"role": "user", "parts": [{"text": "Hello"}]}]
    assert body["generationConfig"] == {"temperature": 0.2}


def test_invalid_provider(post):
    with pytest.raises(ConfigurationError):
        client.send_request(PAYLOAD, provider="nope")
    post.assert_not_called()


def test_missing_key(post, monkeypatch):
    monkeypatch.setattr(provider_config, "load_key", lambda path: None)

    with pytest.raises(ConfigurationError):
        client.send_request(PAYLOAD, provider="groq")
    post.assert_not_called()


def test_http_error_is_sanitized(post):
    error = requests.exceptions.HTTPError("500 Server Error: secret body", response=Mock(status_code=500))
    post.return_value = _response(error=error)

    with pytest.raises(GenerationError) as exc_info:
        client.send_request(PAYLOAD, provider="local")

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "LOCAL HTTP ERROR (500)"
    assert "secret" not in str(exc_info.value)


def test_connection_error(post):
    post.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(GenerationError) as exc_info:
        client.send_request(PAYLOAD, provider="local")
    assert exc_info.value.status_code is None


def test_unexpected_shape(post):
    post.return_value = _response({"unexpected": True})

    with pytest.raises(GenerationError):
        client.send_request(PAYLOAD, provider="local")


def test_load_key_prefers_environment(monkeypatch, tmp_path):
    key_file = tmp_path / "openai.key"
    key_file.write_text("from-file\n", encoding="utf-8")

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert provider_config.load_key(str(key_file)) == "from-file"

    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    assert provider_config.load_key(str(key_file)) == "from-env"

    assert provider_config.load_key(None) is None
    assert provider_config.load_key(str(tmp_path / "missing.key")) is None
