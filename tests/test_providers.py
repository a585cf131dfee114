"""
Provider Tests
==============

Registry state, adapter selection and HTTP adapter error mapping.
"""

import json

import pytest
import requests
from pydantic import SecretStr

from conftest import run
from surfcoach_agent.errors import ConfigurationError, ProviderError
from surfcoach_agent.models import ProviderConfig
from surfcoach_agent.providers import (
    GeminiAdapter,
    HuggingFaceAdapter,
    MockProviderAdapter,
    ProviderRegistry,
    ZhipuAdapter,
    create_adapter,
)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, body=None, text: str = "") -> None:
        self.status_code = status_code
        self._body = body
        self.text = text or (json.dumps(body) if body is not None else "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Records posts and replays one response (or raises)."""

    def __init__(self, response=None, error: Exception = None) -> None:
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _config(provider_id: str, **fields) -> ProviderConfig:
    fields.setdefault("name", provider_id.title())
    fields.setdefault("endpoint", f"https://{provider_id}.example/api")
    fields.setdefault("credential", SecretStr("secret-key"))
    fields.setdefault("supports_vision", True)
    return ProviderConfig(id=provider_id, **fields)


def _adapter(cls, provider_id, session, **fields):
    return cls(_config(provider_id, **fields), max_rps=0, session=session)


class TestRegistry:
    """Tests for ProviderRegistry."""

    def test_active_selection(self, registry):
        assert registry.active_id == "mock"
        registry.set_active("gemini")
        assert registry.active.name == "Google Gemini"

    def test_unknown_provider(self, registry):
        with pytest.raises(ConfigurationError):
            registry.set_active("openai")
        with pytest.raises(ConfigurationError):
            registry.get("openai")

    def test_available_requires_credential_and_vision(self, registry):
        assert registry.available() == ["mock"]
        registry.set_credential("gemini", "k")
        assert registry.available() == ["mock", "gemini"]

    def test_set_credential_replaces_config(self, registry):
        before = registry.get("gemini")
        registry.set_credential("gemini", "new-key")
        after = registry.get("gemini")

        assert before.has_credential is False
        assert after.secret() == "new-key"
        assert after is not before

    def test_clear_credential(self, registry):
        registry.set_credential("mock", "")
        assert registry.get("mock").has_credential is False

    def test_run_guard_locks(self, registry):
        with registry.run_guard():
            assert registry.locked
            with pytest.raises(ConfigurationError):
                registry.set_active("gemini")
            with pytest.raises(ConfigurationError):
                with registry.run_guard():
                    pass
        assert registry.locked is False

    def test_from_settings_reads_credential_env(self, monkeypatch):
        from surfcoach_agent.config import ProvidersConfig

        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        monkeypatch.delenv("ZHIPU_API_KEY", raising=False)
        registry = ProviderRegistry.from_settings(ProvidersConfig(active="gemini"))

        assert registry.active_id == "gemini"
        assert registry.get("gemini").secret() == "from-env"
        assert registry.get("zhipu").has_credential is False
        assert registry.get("mock").has_credential is True
        assert registry.get("groq").supports_vision is False
        assert str(registry.get("huggingface").quota) == "300/hour"

    def test_from_settings_unknown_active(self):
        from surfcoach_agent.config import ProvidersConfig

        registry = ProviderRegistry.from_settings(ProvidersConfig(active="nope"))
        assert registry.active_id is None


class TestCreateAdapter:
    """Tests for adapter selection."""

    @pytest.mark.parametrize("provider_id, cls", [
        ("gemini", GeminiAdapter),
        ("huggingface", HuggingFaceAdapter),
        ("zhipu", ZhipuAdapter),
        ("mock", MockProviderAdapter),
    ])
    def test_selects_by_id(self, provider_id, cls):
        assert isinstance(create_adapter(_config(provider_id)), cls)

    def test_no_vision_support(self):
        with pytest.raises(ConfigurationError, match="image analysis"):
            create_adapter(_config("groq", supports_vision=False))

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            create_adapter(_config("openai"))


class TestGeminiAdapter:
    """Tests for the Gemini request/response mapping."""

    def test_request_and_reply(self):
        session = FakeSession(FakeResponse(body={
            "candidates": [{"content": {"parts": [{"text": '{"ok": true}'}]}}],
        }))
        adapter = _adapter(GeminiAdapter, "gemini", session, model="gemini-1.5-flash")

        text = run(adapter.analyze(b"abc", "Describe"))

        assert text == '{"ok": true}'
        post = session.posts[0]
        assert post["url"] == "https://gemini.example/api/gemini-1.5-flash:generateContent"
        assert post["headers"]["x-goog-api-key"] == "secret-key"
        parts = post["json"]["contents"][0]["parts"]
        assert parts[0] == {"text": "Describe"}
        assert parts[1]["inline_data"] == {"mime_type": "image/jpeg", "data": "YWJj"}
        assert post["timeout"] == 30.0

    def test_non_2xx_preserves_status_and_message(self):
        session = FakeSession(FakeResponse(status_code=429, text="Resource exhausted"))
        adapter = _adapter(GeminiAdapter, "gemini", session)

        with pytest.raises(ProviderError) as exc_info:
            run(adapter.analyze(b"abc", "Describe"))

        assert exc_info.value.status == 429
        assert exc_info.value.message == "Resource exhausted"
        assert exc_info.value.provider_id == "gemini"
        assert adapter.get_metrics()["api_error_count"] == 1

    def test_transport_failure(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        adapter = _adapter(GeminiAdapter, "gemini", session)

        with pytest.raises(ProviderError) as exc_info:
            run(adapter.analyze(b"abc", "Describe"))
        assert exc_info.value.status is None

    def test_malformed_envelope(self):
        session = FakeSession(FakeResponse(body={"candidates": []}))
        adapter = _adapter(GeminiAdapter, "gemini", session)

        with pytest.raises(ProviderError, match="Malformed"):
            run(adapter.analyze(b"abc", "Describe"))

    def test_non_json_body(self):
        session = FakeSession(FakeResponse(status_code=200, text="<html>"))
        adapter = _adapter(GeminiAdapter, "gemini", session)

        with pytest.raises(ProviderError, match="not JSON"):
            run(adapter.analyze(b"abc", "Describe"))


class TestOtherAdapters:
    """Tests for the Hugging Face and Zhipu mappings."""

    def test_huggingface(self):
        session = FakeSession(FakeResponse(body=[{"generated_text": "reply"}]))
        adapter = _adapter(HuggingFaceAdapter, "huggingface", session, model="llava")

        assert run(adapter.analyze(b"abc", "Describe")) == "reply"
        post = session.posts[0]
        assert post["url"] == "https://huggingface.example/api/llava"
        assert post["headers"]["Authorization"] == "Bearer secret-key"
        assert post["json"]["inputs"]["image"] == "data:image/jpeg;base64,YWJj"

    def test_zhipu(self):
        session = FakeSession(FakeResponse(body={
            "choices": [{"message": {"content": "reply"}}],
        }))
        adapter = _adapter(ZhipuAdapter, "zhipu", session)

        assert run(adapter.analyze(b"abc", "Describe")) == "reply"
        post = session.posts[0]
        assert post["url"] == "https://zhipu.example/api"
        assert post["json"]["model"] == "glm-4v"
        content = post["json"]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "Describe"}
        assert content[1]["image_url"]["url"].endswith("YWJj")


class TestMockAdapter:
    """Tests for the offline adapter."""

    def test_cycles_deterministically(self):
        first = MockProviderAdapter()
        second = MockProviderAdapter()

        replies_a = [run(first.analyze(b"", "")) for _ in range(6)]
        replies_b = [run(second.analyze(b"", "")) for _ in range(6)]

        assert replies_a == replies_b
        assert replies_a[0] == replies_a[5]
        assert json.loads(replies_a[0])["current_action"] == "takeoff"

    def test_malformed_every(self):
        adapter = MockProviderAdapter(malformed_every=2)
        replies = [run(adapter.analyze(b"", "")) for _ in range(4)]

        assert replies[1].startswith("The surfer")
        assert replies[3].startswith("The surfer")
        assert adapter.call_count == 4
