"""Provider 元数据注册表。

集中记录每个受支持 Provider 的显示名、默认模型、说明与默认基础URL。
注册表是只读映射，由 ProviderFactory 在构造时接收，
便于测试时传入自定义表而不依赖隐藏的全局状态。
"""

from types import MappingProxyType
from typing import Mapping

from novel_agent.domain.models import ProviderInfo


CLAUDE_INFO = ProviderInfo(
    name="claude",
    display_name="Claude",
    default_model="claude-sonnet-4-5-20250929",
    description="Anthropic Claude - 擅长复杂推理、长文本处理和代码生成",
    default_base_url="https://api.anthropic.com/v1",
)

DEEPSEEK_INFO = ProviderInfo(
    name="deepseek",
    display_name="DeepSeek",
    default_model="deepseek-chat",
    description="DeepSeek - 国产大模型，中文理解能力强，成本低",
    default_base_url="https://api.deepseek.com/v1",
)


PROVIDER_REGISTRY: Mapping[str, ProviderInfo] = MappingProxyType({
    CLAUDE_INFO.name: CLAUDE_INFO,
    DEEPSEEK_INFO.name: DEEPSEEK_INFO,
})
