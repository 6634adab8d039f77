import pytest

from novel_agent.agents.session import ConversationSession
from novel_agent.api import service
from novel_agent.domain.exceptions import BackendError
from novel_agent.domain.models import ModelResponse, ProviderSnapshot, TokenUsage


class StubProvider:
    name = "stub"

    def __init__(self, fail=False):
        self.fail = fail

    def chat(self, messages, system_prompt=None):
        if self.fail:
            raise BackendError("Stub", "down", status_code=503, code="API_ERROR")
        return ModelResponse(content=f"echo:{messages[-1].content}", model="stub-1", usage=TokenUsage(1, 1, 2))

    def get_config(self):
        return ProviderSnapshot(provider="Stub", model="stub-1", max_tokens=10, temperature=0.1)


def test_run_chat_and_history(monkeypatch):
    monkeypatch.setattr(service, "_agent", ConversationSession(StubProvider(), "sys"))
    result = service.run_chat("hi")
    assert result["content"] == "echo:hi"
    assert result["model_info"] == "当前使用: Stub - stub-1"
    assert result["usage"] == {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}
    assert service.chat_history() == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "echo:hi"},
    ]
    service.reset_chat()
    assert service.chat_history() == []


def test_run_chat_propagates_backend_error(monkeypatch):
    monkeypatch.setattr(service, "_agent", ConversationSession(StubProvider(fail=True)))
    with pytest.raises(BackendError):
        service.run_chat("hi")
    assert service.chat_history() == [{"role": "user", "content": "hi"}]


def test_provider_overview():
    overview = service.provider_overview()
    assert [p["id"] for p in overview] == ["claude", "deepseek"]
    assert overview[0]["name"] == "Claude"
    assert overview[1]["default_model"] == "deepseek-chat"
