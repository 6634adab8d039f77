import pytest

from novel_agent.agents.novel_agent import NovelAgent
from novel_agent.agents.session import ConversationSession
from novel_agent.domain.exceptions import BackendError, UnsupportedProviderError
from novel_agent.domain.models import (
    Message,
    ModelResponse,
    ProviderConfig,
    ProviderSnapshot,
    TokenUsage,
)
from novel_agent.prompts import load_system_prompt
from novel_agent.providers.base import stream_from_chat


class FakeProvider:
    name = "fake"

    def __init__(self, replies=None, fail=False, fragments=None):
        self.replies = list(replies or [])
        self.fail = fail
        self.fragments = fragments
        self.calls = []

    def chat(self, messages, system_prompt=None):
        self.calls.append((list(messages), system_prompt))
        if self.fail:
            raise BackendError("Fake", "boom", status_code=500, code="API_ERROR")
        content = self.replies.pop(0) if self.replies else f"reply-{len(self.calls)}"
        return ModelResponse(content=content, model="fake-1", usage=TokenUsage(1, 2, 3))

    def stream_chat(self, messages, system_prompt=None):
        if self.fragments is None:
            yield from stream_from_chat(self.chat, messages, system_prompt)
            return
        self.calls.append((list(messages), system_prompt))
        for fragment in self.fragments:
            if isinstance(fragment, Exception):
                raise fragment
            yield fragment

    def get_default_model(self):
        return "fake-1"

    def get_provider_name(self):
        return "Fake"

    def validate_api_key(self):
        return True

    def get_config(self):
        return ProviderSnapshot(provider="Fake", model="fake-1", max_tokens=4096, temperature=0.7)


def test_history_alternates_user_assistant():
    provider = FakeProvider()
    session = ConversationSession(provider, "sys")
    for i in range(3):
        assert session.submit(f"q{i}") == f"reply-{i + 1}"
    history = session.history()
    assert len(history) == 6
    assert [m.role for m in history] == ["user", "assistant"] * 3
    assert [m.content for m in history[::2]] == ["q0", "q1", "q2"]


def test_submit_sends_full_history_and_system_prompt():
    provider = FakeProvider(replies=["a1", "a2"])
    session = ConversationSession(provider, "sys")
    session.submit("q1")
    session.submit("q2")
    sent, system_prompt = provider.calls[-1]
    assert system_prompt == "sys"
    assert sent == [
        Message("user", "q1"),
        Message("assistant", "a1"),
        Message("user", "q2"),
    ]
    assert session.last_usage.total_tokens == 3


def test_failed_submit_keeps_user_turn():
    provider = FakeProvider(fail=True)
    session = ConversationSession(provider)
    with pytest.raises(BackendError):
        session.submit("hello")
    assert session.history() == [Message("user", "hello")]

    provider.fail = False
    assert session.submit("retry") == "reply-2"
    sent, _ = provider.calls[-1]
    assert [m.content for m in sent] == ["hello", "retry"]


def test_reset_clears_history():
    session = ConversationSession(FakeProvider())
    session.submit("q")
    session.reset()
    assert session.history() == []
    session.reset()
    assert session.history() == []
    assert session.last_usage is None


def test_history_is_a_copy():
    session = ConversationSession(FakeProvider())
    session.submit("q")
    snapshot = session.history()
    snapshot.append(Message("user", "injected"))
    snapshot.clear()
    assert len(session.history()) == 2


def test_provider_does_not_see_later_mutation():
    provider = FakeProvider()
    session = ConversationSession(provider)
    session.submit("q")
    sent, _ = provider.calls[0]
    assert sent == [Message("user", "q")]


def test_stream_submit_records_joined_reply():
    provider = FakeProvider(fragments=["从前", "有座", "山"])
    session = ConversationSession(provider, "sys")
    assert list(session.stream_submit("讲个故事")) == ["从前", "有座", "山"]
    assert session.history() == [
        Message("user", "讲个故事"),
        Message("assistant", "从前有座山"),
    ]


def test_stream_submit_falls_back_to_chat():
    session = ConversationSession(FakeProvider(replies=["whole"]))
    assert list(session.stream_submit("q")) == ["whole"]
    assert session.history()[-1] == Message("assistant", "whole")


def test_stream_submit_failure_keeps_user_turn_only():
    provider = FakeProvider(fragments=["a", BackendError("Fake", "dropped", code="NETWORK_ERROR")])
    session = ConversationSession(provider)
    gen = session.stream_submit("q")
    assert next(gen) == "a"
    with pytest.raises(BackendError):
        next(gen)
    assert session.history() == [Message("user", "q")]


def test_abandoned_stream_does_not_record_reply():
    provider = FakeProvider(fragments=["a", "b", "c"])
    session = ConversationSession(provider)
    gen = session.stream_submit("q")
    next(gen)
    gen.close()
    assert session.history() == [Message("user", "q")]
    provider.fragments = ["ok"]
    assert list(session.stream_submit("again")) == ["ok"]
    assert [m.role for m in session.history()] == ["user", "user", "assistant"]


def test_stream_from_chat_yields_single_fragment():
    provider = FakeProvider(replies=["full text"])
    fragments = list(stream_from_chat(provider.chat, [Message("user", "q")], "sys"))
    assert fragments == ["full text"]
    assert provider.calls[0][1] == "sys"


def test_model_info():
    session = ConversationSession(FakeProvider())
    assert session.model_info() == "当前使用: Fake - fake-1"


def test_novel_agent_uses_novel_prompt():
    agent = NovelAgent("deepseek", ProviderConfig(api_key="sk-test-deepseek"))
    assert agent.system_prompt == load_system_prompt("novel")
    assert "Novel Agent" in agent.system_prompt
    assert agent.provider.name == "deepseek"
    assert agent.model_info() == "当前使用: DeepSeek - deepseek-chat"


def test_novel_agent_unsupported_provider():
    with pytest.raises(UnsupportedProviderError):
        NovelAgent("made-up-backend", ProviderConfig(api_key="k"))
