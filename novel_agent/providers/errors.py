"""HTTP 响应与传输异常到 BackendError 的统一转换。

各 Provider 客户端共用这些函数，保证错误里总是带上 Provider 名、
状态码（若有）和远端返回的错误详情。
"""

import json
from typing import Any

import httpx

from novel_agent.domain.exceptions import BackendError, RateLimitError


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def error_detail(resp: Any) -> Any:
    """尽量把错误体解析为 JSON；解析失败时返回空字典，不再额外抛错。"""

    try:
        return resp.json()
    except ValueError:
        return {}


def _detail_message(detail: Any) -> str:
    if isinstance(detail, dict):
        err = detail.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return json.dumps(detail, ensure_ascii=False)


def raise_for_status(resp: Any, provider: str) -> None:
    """非 2xx 状态码一律视为错误，即使响应里带有内容。

    流式响应需要先 read() 再调用本函数。
    """

    status = resp.status_code
    if is_success(status):
        return
    detail = error_detail(resp)
    message = _detail_message(detail)
    if status == 429:
        raise RateLimitError(provider, message, status_code=status, code="RATE_LIMIT", detail=detail)
    raise BackendError(provider, message, status_code=status, code="API_ERROR", detail=detail)


def read_json(resp: Any, provider: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise BackendError(
            provider,
            f"响应不是合法的 JSON: {e}",
            status_code=resp.status_code,
            code="MALFORMED_RESPONSE",
        ) from e


def transport_error(exc: Exception, provider: str) -> BackendError:
    """把 httpx 的网络层异常（DNS 失败、连接中断、超时、非法 URL 等）包装为 BackendError。"""

    if isinstance(exc, httpx.InvalidURL):
        return BackendError(provider, f"非法的 API 地址: {exc}", code="INVALID_URL")
    if isinstance(exc, httpx.TimeoutException):
        return BackendError(provider, str(exc) or "请求超时", code="TIMEOUT")
    return BackendError(provider, str(exc) or exc.__class__.__name__, code="NETWORK_ERROR")


# chat / stream_chat 中需要转换为 BackendError 的 httpx 异常
TRANSPORT_ERRORS = (httpx.RequestError, httpx.InvalidURL)


def require_api_key(api_key: str, provider: str, env_name: str) -> None:
    """缺失或含非 ASCII 字符（如粘贴进来的全角字符、零宽空格）的密钥无法放进 HTTP 头。"""

    if not api_key:
        raise BackendError(provider, f"{env_name} not set", code="MISSING_API_KEY")
    try:
        api_key.encode("ascii")
    except UnicodeEncodeError:
        raise BackendError(provider, f"{env_name} 含有非 ASCII 字符", code="INVALID_API_KEY") from None


def usage_counter(usage_raw: dict, key: str, provider: str) -> int:
    """读取 usage 中的计数，null 视为 0，非数字视为响应结构错误。"""

    try:
        return int(usage_raw.get(key) or 0)
    except (TypeError, ValueError) as e:
        raise BackendError(
            provider,
            f"usage.{key} 不是合法的数字: {usage_raw.get(key)!r}",
            code="MALFORMED_RESPONSE",
            detail=usage_raw,
        ) from e
