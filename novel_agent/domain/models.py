"""统一的对话与结果数据模型。

本模块定义了在不同 Provider 之间共享的标准数据结构：

- Message: 一条对话消息（system/user/assistant）。
- ProviderConfig: 构造 Provider 客户端所需的配置。
- ModelResponse: 从 Provider 解析后的统一响应结果。

所有 Provider 适配器（如 ClaudeClient）都必须只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass
from typing import Literal, Optional


# LLM 消息角色类型
Role = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class Message:
    """一条对话消息，追加到历史后不可再修改。"""

    role: Role
    content: str


@dataclass(frozen=True)
class ProviderConfig:
    """单个 Provider 客户端的配置，构造后不可变。

    - api_key: 访问凭据。
    - model: 模型名，为空时使用 Provider 的默认模型。
    - max_tokens / temperature: 生成参数。
    - base_url: 覆盖默认的 API 基础URL。
    - timeout: HTTP 超时时间（秒），防止远端连接卡死。
    """

    api_key: str
    model: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    base_url: Optional[str] = None
    timeout: float = 60.0


@dataclass(frozen=True)
class TokenUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class ModelResponse:
    """一次非流式对话调用的结果。

    - content: 回复文本。
    - model: 实际提供服务的模型（可能与请求的模型不同）。
    - usage: 可选的 token 使用统计。
    """

    content: str
    model: str
    usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class ProviderSnapshot:
    """get_config() 返回的只读配置快照。"""

    provider: str
    model: str
    max_tokens: int
    temperature: float


@dataclass(frozen=True)
class ProviderInfo:
    """Provider 元数据，用于面向用户的选择列表。"""

    name: str
    display_name: str
    default_model: str
    description: str
    default_base_url: str
