"""Provider 抽象接口。

上层会话不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ModelProvider（如 ClaudeClient、DeepSeekClient）。
- 负责：将消息历史转成具体 API 请求，并把响应 JSON 解析为 ModelResponse。

没有真正流式传输的 Provider 可以直接用 stream_from_chat 实现 stream_chat，
这样所有 Provider 都能通过同一个流式调用点使用。
"""

from typing import Callable, Iterator, Optional, Protocol, Sequence

from novel_agent.domain.models import Message, ModelResponse, ProviderConfig, ProviderSnapshot


ChatFn = Callable[[Sequence[Message], Optional[str]], ModelResponse]


class ModelProvider(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 标识（注册表中的键），用于日志/统计。
    - chat(messages, system_prompt): 执行一次非流式对话调用，返回 ModelResponse。
    - stream_chat(messages, system_prompt): 逐步产出回复文本片段。
    - validate_api_key(): 发送最小请求检查凭据，永不抛异常。
    """

    name: str

    def chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> ModelResponse:
        ...

    def stream_chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> Iterator[str]:
        ...

    def get_default_model(self) -> str:
        ...

    def get_provider_name(self) -> str:
        ...

    def validate_api_key(self) -> bool:
        ...

    def get_config(self) -> ProviderSnapshot:
        ...


def stream_from_chat(
    chat_fn: ChatFn,
    messages: Sequence[Message],
    system_prompt: Optional[str] = None,
) -> Iterator[str]:
    """没有增量传输时的默认流式实现：调用一次 chat，整段内容作为单个片段返回。"""

    response = chat_fn(messages, system_prompt)
    yield response.content


def resolve_model(config: ProviderConfig, default_model: str) -> str:
    return config.model or default_model


def snapshot(provider_name: str, model: str, config: ProviderConfig) -> ProviderSnapshot:
    """生成 get_config() 使用的只读快照。"""

    return ProviderSnapshot(
        provider=provider_name,
        model=model,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
