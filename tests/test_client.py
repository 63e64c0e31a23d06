"""Tests for the chat-completions backend client."""

import pytest
import requests

from uad.client import BackendError, ChatCompletionsClient, build_messages


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else str(body)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_MODEL"):
        monkeypatch.delenv(var, raising=False)


def make_client(monkeypatch, result, **kwargs):
    client = ChatCompletionsClient(api_key="sk-test", model="gpt-test", **kwargs)
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(client.session, "post", fake_post)
    return client, sent


class TestProviderSelection:
    def test_openai_defaults(self):
        client = ChatCompletionsClient(api_key="sk-test", model="gpt-test")
        assert client.provider == "openai"
        assert client.base_url == "https://api.openai.com/v1"
        assert client.session.headers["Authorization"] == "Bearer sk-test"

    def test_base_url_gets_v1_suffix(self):
        client = ChatCompletionsClient(api_key="k", base_url="http://localhost:11434/")
        assert client.base_url == "http://localhost:11434/v1"

    def test_azure_from_settings(self):
        settings = {"api": {"provider": "azure", "api_key": "az", "model": "dep", "base_url": "https://x.openai.azure.com"}}
        client = ChatCompletionsClient(settings=settings)
        assert client.provider == "azure"
        assert client.base_url == "https://x.openai.azure.com/openai/v1"
        assert client.session.headers["api-key"] == "az"
        assert client.model == "dep"

    def test_missing_key_is_a_backend_error(self):
        with pytest.raises(BackendError, match="no API key"):
            ChatCompletionsClient()


class TestGenerateResponse:
    def test_success_returns_first_choice(self, monkeypatch):
        body = {"choices": [{"message": {"role": "assistant", "content": '{"actions": []}'}}], "usage": {"prompt_tokens": 3}}
        client, sent = make_client(monkeypatch, FakeResponse(body=body))
        history = [{"role": "system", "content": "preamble"}]
        assert client.generate_response("hi", history) == '{"actions": []}'
        assert sent[0]["url"] == "https://api.openai.com/v1/chat/completions"
        assert sent[0]["json"]["model"] == "gpt-test"
        assert sent[0]["json"]["messages"] == [
            {"role": "system", "content": "preamble"},
            {"role": "user", "content": "hi"},
        ]

    def test_http_error(self, monkeypatch):
        client, _ = make_client(monkeypatch, FakeResponse(status_code=401, body={}, text="invalid key"))
        with pytest.raises(BackendError, match="401"):
            client.generate_response("hi", [])

    def test_timeout(self, monkeypatch):
        client, _ = make_client(monkeypatch, requests.exceptions.Timeout("slow"))
        with pytest.raises(BackendError, match="timed out"):
            client.generate_response("hi", [])

    def test_connection_error(self, monkeypatch):
        client, _ = make_client(monkeypatch, requests.exceptions.ConnectionError("down"))
        with pytest.raises(BackendError, match="request failed"):
            client.generate_response("hi", [])

    def test_empty_choices(self, monkeypatch):
        client, _ = make_client(monkeypatch, FakeResponse(body={"choices": []}))
        with pytest.raises(BackendError, match="empty"):
            client.generate_response("hi", [])

    def test_non_json_body(self, monkeypatch):
        client, _ = make_client(monkeypatch, FakeResponse(body=ValueError("bad"), text="<html>"))
        with pytest.raises(BackendError, match="non-JSON"):
            client.generate_response("hi", [])

    def test_http_calls_are_dumped_when_enabled(self, monkeypatch, tmp_path):
        body = {"choices": [{"message": {"content": "ok"}}]}
        settings = {"logging": {"httpcalls": {"enabled": True, "dir": str(tmp_path / "calls")}}}
        client, _ = make_client(monkeypatch, FakeResponse(body=body), settings=settings)
        client.generate_response("hi", [])
        dumps = list((tmp_path / "calls").glob("call-*.http"))
        assert len(dumps) == 1
        text = dumps[0].read_text(encoding="utf-8")
        assert text.startswith("POST https://api.openai.com/v1/chat/completions")
        assert "sk-test" not in text


def test_build_messages_appends_prompt():
    assert build_messages("p", [{"role": "assistant", "content": "a"}])[-1] == {"role": "user", "content": "p"}
