"""小说创作助手 Agent 的专用包装。

根据 Provider 标识与配置创建客户端，并固定使用小说创作的系统提示词。
"""

from typing import Optional

from novel_agent.agents.session import ConversationSession
from novel_agent.domain.models import ProviderConfig
from novel_agent.prompts import load_system_prompt
from novel_agent.providers import ProviderFactory


class NovelAgent(ConversationSession):
    """NovelAgent - 支持多模型的小说创作助手。"""

    def __init__(
        self,
        provider: str,
        config: ProviderConfig,
        factory: Optional[ProviderFactory] = None,
        system_prompt: Optional[str] = None,
    ):
        """初始化 NovelAgent。

        Args:
            provider: Provider 标识，如 "claude"、"deepseek"
            config: Provider 配置（凭据、模型、生成参数等）
            factory: 自定义的 ProviderFactory（可选）
            system_prompt: 覆盖默认的小说创作系统提示词（可选）

        Raises:
            UnsupportedProviderError: provider 不在支持列表中
        """
        factory = factory or ProviderFactory()
        super().__init__(
            provider=factory.create(provider, config),
            system_prompt=system_prompt or load_system_prompt("novel"),
        )
