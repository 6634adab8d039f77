"""Claude / Anthropic Provider 适配器。

本模块负责：

1. 接收统一的消息历史与系统提示词。
2. 将其转换为 Anthropic Messages API 的请求格式：
   messages 数组中只能有 user/assistant，系统提示词走顶层 system 字段。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 将响应 JSON 解析为统一的 ModelResponse；流式时只取 text_delta 事件。
"""

import json
import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from novel_agent.domain.exceptions import BackendError
from novel_agent.domain.models import (
    Message,
    ModelResponse,
    ProviderConfig,
    ProviderInfo,
    ProviderSnapshot,
    TokenUsage,
)
from novel_agent.infrastructure.logging.logger import log_event
from novel_agent.providers.base import resolve_model, snapshot
from novel_agent.providers.errors import (
    TRANSPORT_ERRORS,
    is_success,
    raise_for_status,
    read_json,
    require_api_key,
    transport_error,
    usage_counter,
)
from novel_agent.providers.registry import CLAUDE_INFO
from novel_agent.providers.sse import extract_data

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeClient:
    """Claude 提供方客户端实现。

    - name: Provider 标识（供日志/注册表使用）。
    - chat / stream_chat: 对外统一调用入口。
    """

    name = "claude"

    def __init__(self, config: ProviderConfig, info: ProviderInfo = CLAUDE_INFO):
        # ProviderConfig 里包含 api_key、模型、生成参数与超时等配置
        self._config = config
        self._info = info
        self._model = resolve_model(config, info.default_model)
        self._base_url = (config.base_url or info.default_base_url).rstrip("/")

    def get_default_model(self) -> str:
        return self._info.default_model

    def get_provider_name(self) -> str:
        return self._info.display_name

    def get_config(self) -> ProviderSnapshot:
        return snapshot(self.get_provider_name(), self._model, self._config)

    def chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> ModelResponse:
        """执行一次非流式对话调用。

        步骤：
        1. 过滤掉 system 角色的消息，构造请求 payload。
        2. 发送请求并捕获网络错误/限流/服务端错误。
        3. 拼接所有 text 类型的内容块得到回复文本。
        """

        self._require_api_key()
        payload = self._build_payload(messages, system_prompt, stream=False)
        start = time.monotonic()
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                resp = client.post(self._endpoint(), json=payload, headers=self._headers())
        except TRANSPORT_ERRORS as e:
            # 网络错误：DNS 失败、连接超时等
            raise transport_error(e, self.get_provider_name()) from e
        raise_for_status(resp, self.get_provider_name())
        data = read_json(resp, self.get_provider_name())
        result = self._parse_response(data)
        log_event(
            logging.INFO,
            "Claude chat finished",
            provider=self.name,
            model=result.model,
            latency_ms=int((time.monotonic() - start) * 1000),
            messages=len(payload["messages"]),
        )
        return result

    def stream_chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> Iterator[str]:
        """执行一次流式对话调用，逐个 yield 文本增量。

        Anthropic 的事件流已经按增量切好，这里只按行读取事件，
        不需要额外的缓冲。
        """

        self._require_api_key()
        payload = self._build_payload(messages, system_prompt, stream=True)
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                with client.stream("POST", self._endpoint(), json=payload, headers=self._headers()) as resp:
                    if not is_success(resp.status_code):
                        resp.read()
                        raise_for_status(resp, self.get_provider_name())
                    for line in resp.iter_lines():
                        raw = extract_data(line)
                        if not raw:
                            continue
                        try:
                            event = json.loads(raw)
                        except json.JSONDecodeError as e:
                            log_event(
                                logging.WARNING,
                                "Skipped malformed stream event",
                                provider=self.name,
                                error=str(e),
                                chunk=raw[:200],
                            )
                            continue
                        if not isinstance(event, dict):
                            continue
                        event_type = event.get("type")
                        if event_type == "message_stop":
                            return
                        if event_type == "error":
                            self._raise_stream_error(event)
                        text = self._text_delta(event)
                        if text:
                            yield text
        except TRANSPORT_ERRORS as e:
            raise transport_error(e, self.get_provider_name()) from e

    def validate_api_key(self) -> bool:
        """发送一个最小的测试请求，任何失败都返回 False。"""

        try:
            self._require_api_key()
        except BackendError as e:
            log_event(logging.WARNING, "Claude key check skipped", provider=self.name, code=e.code)
            return False
        payload = {
            "model": self._model,
            "max_tokens": 10,
            "messages": [{"role": "user", "content": "Hi"}],
        }
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                resp = client.post(self._endpoint(), json=payload, headers=self._headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log_event(logging.WARNING, "Claude key check unreachable", provider=self.name, error=str(e))
            return False
        if not is_success(resp.status_code):
            log_event(logging.WARNING, "Claude key check rejected", provider=self.name, status=resp.status_code)
            return False
        return True

    # ---- 辅助方法 ----

    def _endpoint(self) -> str:
        return f"{self._base_url}/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self._config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _require_api_key(self) -> None:
        # 配置缺失同样以 BackendError 抛出，方便上层统一处理
        require_api_key(self._config.api_key, self.get_provider_name(), "ANTHROPIC_API_KEY")

    def _build_payload(self, messages: Sequence[Message], system_prompt: Optional[str], stream: bool) -> dict:
        payload: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "messages": self._convert_messages(messages),
            "stream": stream,
        }
        if system_prompt:
            payload["system"] = system_prompt
        return payload

    @staticmethod
    def _convert_messages(messages: Sequence[Message]) -> List[Dict[str, str]]:
        # Anthropic 不接受 messages 中的 system 角色
        return [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]

    def _parse_response(self, data: Any) -> ModelResponse:
        """将原始响应 JSON 解析为统一的 ModelResponse。"""

        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise BackendError(
                self.get_provider_name(),
                "响应缺少 content 列表",
                code="MALFORMED_RESPONSE",
                detail=data,
            )
        content = "\n".join(
            str(block.get("text", ""))
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage_raw = data.get("usage")
        usage = None
        if isinstance(usage_raw, dict):
            input_tokens = usage_counter(usage_raw, "input_tokens", self.get_provider_name())
            output_tokens = usage_counter(usage_raw, "output_tokens", self.get_provider_name())
            usage = TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )
        return ModelResponse(content=content, model=data.get("model") or self._model, usage=usage)

    @staticmethod
    def _text_delta(event: Dict[str, Any]) -> Optional[str]:
        if event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if not isinstance(delta, dict) or delta.get("type") != "text_delta":
            return None
        text = delta.get("text")
        return text if isinstance(text, str) else None

    def _raise_stream_error(self, event: Dict[str, Any]) -> None:
        err = event.get("error") or {}
        message = err.get("message") if isinstance(err, dict) else None
        raise BackendError(
            self.get_provider_name(),
            message or "stream error event",
            code="STREAM_ERROR",
            detail=event,
        )
