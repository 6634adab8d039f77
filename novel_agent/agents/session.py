"""会话核心模块。

ConversationSession 持有一段对话的消息历史：追加用户消息、调用 Provider、
追加助手回复。同一个会话实例同一时刻只允许一个请求在途，调用方负责串行化；
不同会话之间没有共享的可变状态，可以并发使用。
"""

from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4
import logging
import time

from novel_agent.domain.models import Message, TokenUsage
from novel_agent.infrastructure.logging.logger import logger
from novel_agent.providers.base import ModelProvider


class ConversationSession:
    def __init__(self, provider: ModelProvider, system_prompt: Optional[str] = None):
        self._provider = provider
        self._system_prompt = system_prompt
        self._history: List[Message] = []
        self._last_usage: Optional[TokenUsage] = None

    @property
    def provider(self) -> ModelProvider:
        return self._provider

    @property
    def system_prompt(self) -> Optional[str]:
        return self._system_prompt

    @property
    def last_usage(self) -> Optional[TokenUsage]:
        """最近一次成功 submit 的 token 统计（流式调用没有统计）。"""
        return self._last_usage

    def submit(self, user_input: str) -> str:
        """发送一条用户消息并返回助手回复。

        Provider 调用失败时用户消息仍保留在历史中（不回滚），
        异常原样抛给调用方；下一次 submit 会带着这条消息重试，
        除非调用方先 reset()。
        """
        start_time = time.time()
        log_ctx = self._log_ctx()
        self._history.append(Message(role="user", content=user_input))

        response = self._provider.chat(list(self._history), self._system_prompt)

        self._history.append(Message(role="assistant", content=response.content))
        self._last_usage = response.usage
        usage_meta: Dict[str, Any] = {}
        if response.usage:
            usage_meta = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        self._log(
            logging.INFO,
            "Turn completed",
            log_ctx,
            model=response.model,
            history_len=len(self._history),
            latency_ms=int((time.time() - start_time) * 1000),
            **usage_meta,
        )
        return response.content

    def stream_submit(self, user_input: str) -> Iterator[str]:
        """流式版本的 submit：逐个 yield 回复片段。

        只有在流完整结束后才把拼接好的回复追加为 assistant 消息；
        中途放弃迭代或流出错时，历史里只留下这条用户消息。
        """
        log_ctx = self._log_ctx()
        self._history.append(Message(role="user", content=user_input))

        parts: List[str] = []
        for fragment in self._provider.stream_chat(list(self._history), self._system_prompt):
            parts.append(fragment)
            yield fragment

        self._history.append(Message(role="assistant", content="".join(parts)))
        self._last_usage = None
        self._log(
            logging.INFO,
            "Streamed turn completed",
            log_ctx,
            fragments=len(parts),
            history_len=len(self._history),
        )

    def reset(self) -> None:
        """清空对话历史。"""
        self._history = []
        self._last_usage = None

    def history(self) -> List[Message]:
        """返回历史的副本，修改返回值不会影响会话状态。"""
        return list(self._history)

    def model_info(self) -> str:
        config = self._provider.get_config()
        return f"当前使用: {config.provider} - {config.model}"

    def _log_ctx(self) -> Dict[str, Any]:
        return {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": getattr(self._provider, "name", None),
        }

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
