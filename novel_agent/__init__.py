"""Novel Agent 顶层包。

该包提供小说创作助手的模型调用核心，
包括配置加载、领域模型、多 Provider 适配（Claude / DeepSeek）、
流式响应归一化与会话历史管理。
"""

from novel_agent.agents.novel_agent import NovelAgent
from novel_agent.agents.session import ConversationSession

__all__ = ["ConversationSession", "NovelAgent"]
