"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 元数据 (registry)。
- 提供各厂商的具体实现 (claude_client、deepseek_client)。
- 根据标识创建 Provider 实例 (ProviderFactory / create_provider)。
"""

from typing import Callable, Dict, FrozenSet, Mapping, Optional

from novel_agent.config.settings import settings
from novel_agent.domain.exceptions import UnsupportedProviderError
from novel_agent.domain.models import ProviderConfig, ProviderInfo
from novel_agent.providers.base import ModelProvider, stream_from_chat
from novel_agent.providers.claude_client import ClaudeClient
from novel_agent.providers.deepseek_client import DeepSeekClient
from novel_agent.providers.registry import PROVIDER_REGISTRY

ClientBuilder = Callable[[ProviderConfig, ProviderInfo], ModelProvider]

DEFAULT_CLIENTS: Mapping[str, ClientBuilder] = {
    "claude": ClaudeClient,
    "deepseek": DeepSeekClient,
}

# Provider 标识 -> settings 中的 (api_key 字段, base_url 字段)
_SETTINGS_FIELDS: Dict[str, tuple] = {
    "claude": ("anthropic_api_key", "anthropic_base_url"),
    "deepseek": ("deepseek_api_key", "deepseek_base_url"),
}


class ProviderFactory:
    """模型提供商工厂。

    支持的标识集合由注册表在构造时确定，之后不再变化；
    标识匹配不区分大小写。
    """

    def __init__(
        self,
        registry: Mapping[str, ProviderInfo] = PROVIDER_REGISTRY,
        clients: Mapping[str, ClientBuilder] = DEFAULT_CLIENTS,
    ):
        missing = set(registry) - set(clients)
        if missing:
            raise ValueError(f"No client implementation for: {sorted(missing)}")
        self._registry = registry
        self._clients = clients

    def create(self, identifier: str, config: ProviderConfig) -> ModelProvider:
        """创建模型提供商实例，不支持的标识抛出 UnsupportedProviderError。"""

        key = self._normalize(identifier)
        if key not in self._registry:
            raise UnsupportedProviderError(str(identifier), self.supported_identifiers())
        return self._clients[key](config, self._registry[key])

    def supported_identifiers(self) -> FrozenSet[str]:
        return frozenset(self._registry)

    def is_supported(self, candidate: object) -> bool:
        return self._normalize(candidate) in self._registry

    def metadata_for(self, identifier: str) -> ProviderInfo:
        key = self._normalize(identifier)
        if key not in self._registry:
            raise UnsupportedProviderError(str(identifier), self.supported_identifiers())
        return self._registry[key]

    def provider_info(self) -> Dict[str, ProviderInfo]:
        """所有受支持 Provider 的元数据，供选择列表展示。"""

        return dict(self._registry)

    def default_model(self, identifier: str) -> str:
        return self.metadata_for(identifier).default_model

    @staticmethod
    def _normalize(identifier: object) -> str:
        return identifier.strip().lower() if isinstance(identifier, str) else ""


def config_from_settings(name: str, cfg=settings) -> ProviderConfig:
    """从配置对象中取出指定 Provider 的凭据、模型与生成参数。"""

    key_field, url_field = _SETTINGS_FIELDS.get(name, (f"{name}_api_key", f"{name}_base_url"))
    return ProviderConfig(
        api_key=getattr(cfg, key_field, None) or "",
        model=getattr(cfg, "model", None),
        max_tokens=getattr(cfg, "max_tokens", 4096),
        temperature=getattr(cfg, "temperature", 0.7),
        base_url=getattr(cfg, url_field, None),
        timeout=getattr(cfg, "http_timeout", 60.0),
    )


def create_provider(name: Optional[str] = None, cfg=None) -> ModelProvider:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    cfg = cfg or settings
    provider_name = (name or getattr(cfg, "default_provider", "claude")).lower()
    factory = ProviderFactory()
    if not factory.is_supported(provider_name):
        raise UnsupportedProviderError(provider_name, factory.supported_identifiers())
    return factory.create(provider_name, config_from_settings(provider_name, cfg))


__all__ = [
    "ClaudeClient",
    "DeepSeekClient",
    "ModelProvider",
    "ProviderFactory",
    "config_from_settings",
    "create_provider",
    "stream_from_chat",
]
