"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在调用方（命令行循环、服务层）做统一捕获与用户提示。
"""

from typing import Any, Iterable, Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "API_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、detail 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class BackendError(BusinessError):
    """远端 Provider 调用失败。

    包括非 2xx 响应、网络错误、超时、响应结构不符以及无法跳过的流式错误。

    Attributes:
        provider: Provider 显示名，如 "Claude"、"DeepSeek"。
        status_code: 远端返回的 HTTP 状态码；网络层错误时为 None。
        detail: 远端错误体（已解析的 JSON 或空字典）。
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        code: str = "BACKEND_ERROR",
        detail: Any = None,
    ):
        self.provider = provider
        self.status_code = status_code
        self.detail = detail if detail is not None else {}
        super().__init__(
            code=code,
            message=message,
            http_status=status_code or 502,
            provider=provider,
        )

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.provider} API 错误: {self.status_code} - {self.message}"
        return f"{self.provider} API 错误: {self.message}"


class RateLimitError(BackendError):
    """Provider 限流错误（HTTP 429），是否重试/退避由调用方决定。"""


class UnsupportedProviderError(BusinessError):
    """请求的 Provider 标识不在支持列表中。"""

    def __init__(self, identifier: str, supported: Iterable[str] = ()):
        self.identifier = identifier
        self.supported = tuple(sorted(supported))
        message = f"不支持的模型提供商: {identifier}"
        if self.supported:
            message += f"（可选: {', '.join(self.supported)}）"
        super().__init__(code="UNSUPPORTED_PROVIDER", message=message, identifier=identifier)
