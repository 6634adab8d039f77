"""DeepSeek Provider 适配器。

DeepSeek 使用 OpenAI 兼容的 chat/completions 端点：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>

系统提示词作为第一条 role=system 的消息注入；流式响应是
"data: " 前缀的 SSE 文本行，以 "data: [DONE]" 结束。
"""

import json
import logging
import time
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

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
from novel_agent.providers.registry import DEEPSEEK_INFO
from novel_agent.providers.sse import iter_sse_data


class DeepSeekClient:
    """DeepSeek Provider 客户端实现。"""

    name = "deepseek"

    def __init__(self, config: ProviderConfig, info: ProviderInfo = DEEPSEEK_INFO):
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

    # ---- 非流式 ----

    def chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> ModelResponse:
        self._require_api_key()
        payload = self._build_payload(messages, system_prompt, stream=False)
        start = time.monotonic()
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                resp = client.post(self._endpoint(), json=payload, headers=self._headers())
        except TRANSPORT_ERRORS as e:
            raise transport_error(e, self.get_provider_name()) from e
        raise_for_status(resp, self.get_provider_name())
        data = read_json(resp, self.get_provider_name())
        result = self._parse_response(data)
        log_event(
            logging.INFO,
            "DeepSeek chat finished",
            provider=self.name,
            model=result.model,
            latency_ms=int((time.monotonic() - start) * 1000),
            messages=len(payload["messages"]),
        )
        return result

    # ---- 流式 ----

    def stream_chat(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> Iterator[str]:
        """执行一次流式对话调用，逐个 yield 文本增量。

        连接级错误（断连、超时）会中止迭代并抛出 BackendError；
        单个无法解析的数据块只记录日志并跳过。
        """

        self._require_api_key()
        payload = self._build_payload(messages, system_prompt, stream=True)
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                with client.stream("POST", self._endpoint(), json=payload, headers=self._headers()) as resp:
                    if not is_success(resp.status_code):
                        resp.read()
                        raise_for_status(resp, self.get_provider_name())
                    yield from self._iter_deltas(resp.iter_bytes())
        except TRANSPORT_ERRORS as e:
            raise transport_error(e, self.get_provider_name()) from e

    def validate_api_key(self) -> bool:
        """发送一个最小请求检查 API Key，任何失败都返回 False。"""

        try:
            self._require_api_key()
        except BackendError as e:
            log_event(logging.WARNING, "DeepSeek key check skipped", provider=self.name, code=e.code)
            return False
        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": "Hi"}],
            "max_tokens": 10,
        }
        try:
            with httpx.Client(timeout=self._config.timeout, trust_env=False) as client:
                resp = client.post(self._endpoint(), json=payload, headers=self._headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log_event(logging.WARNING, "DeepSeek key check unreachable", provider=self.name, error=str(e))
            return False
        if not is_success(resp.status_code):
            log_event(logging.WARNING, "DeepSeek key check rejected", provider=self.name, status=resp.status_code)
            return False
        return True

    # ---- 辅助方法 ----

    def _endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

    def _require_api_key(self) -> None:
        require_api_key(self._config.api_key, self.get_provider_name(), "DEEPSEEK_API_KEY")

    def _build_payload(self, messages: Sequence[Message], system_prompt: Optional[str], stream: bool) -> dict:
        return {
            "model": self._model,
            "messages": self._convert_messages(messages, system_prompt),
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "stream": stream,
        }

    @staticmethod
    def _convert_messages(messages: Sequence[Message], system_prompt: Optional[str]) -> List[Dict[str, str]]:
        """系统提示词放在最前面，其余消息原样透传（包括 system 角色）。"""

        result: List[Dict[str, str]] = []
        if system_prompt:
            result.append({"role": "system", "content": system_prompt})
        result.extend({"role": m.role, "content": m.content} for m in messages)
        return result

    def _parse_response(self, data: Any) -> ModelResponse:
        try:
            message = data["choices"][0]["message"]
            content = message.get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise BackendError(
                self.get_provider_name(),
                f"响应结构不符合预期: {e!r}",
                code="MALFORMED_RESPONSE",
                detail=data,
            ) from e
        usage_raw = data.get("usage")
        usage = None
        if isinstance(usage_raw, dict):
            provider = self.get_provider_name()
            prompt = usage_counter(usage_raw, "prompt_tokens", provider)
            completion = usage_counter(usage_raw, "completion_tokens", provider)
            total = usage_counter(usage_raw, "total_tokens", provider)
            usage = TokenUsage(
                prompt_tokens=prompt,
                completion_tokens=completion,
                total_tokens=total or prompt + completion,
            )
        return ModelResponse(content=content, model=data.get("model") or self._model, usage=usage)

    def _iter_deltas(self, chunks: Iterable[bytes]) -> Iterator[str]:
        """从原始字节流中提取 choices[0].delta.content。"""

        for raw in iter_sse_data(chunks):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                log_event(
                    logging.WARNING,
                    "Skipped malformed stream chunk",
                    provider=self.name,
                    error=str(e),
                    chunk=raw[:200],
                )
                continue
            delta = self._extract_delta(data)
            if delta:
                yield delta

    @staticmethod
    def _extract_delta(data: Any) -> Optional[str]:
        # 只有 role 或只有 finish_reason/usage 的块没有 content
        if not isinstance(data, dict):
            return None
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0] if isinstance(choices[0], dict) else {}
        delta = first.get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None
