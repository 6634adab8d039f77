"""对外 API 服务模块。

提供简化的函数接口供命令行循环等上层应用调用。
"""

from typing import Any, Dict, List, Optional

from novel_agent.agents.novel_agent import NovelAgent
from novel_agent.config.settings import settings
from novel_agent.infrastructure.logging.logger import logger
from novel_agent.providers import ProviderFactory, config_from_settings


_agent: Optional[NovelAgent] = None


def get_default_agent() -> NovelAgent:
    """获取默认的 NovelAgent 实例（单例），Provider 取自配置。"""
    global _agent
    if _agent is None:
        provider = settings.default_provider.lower()
        _agent = NovelAgent(provider, config_from_settings(provider, settings))
    return _agent


def run_chat(user_input: str) -> Dict[str, Any]:
    """发送一条用户消息。

    Returns:
        包含助手回复、模型信息和使用统计的字典

    Raises:
        BackendError: Provider 调用失败
    """
    agent = get_default_agent()
    try:
        content = agent.submit(user_input)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {
            "provider": agent.provider.name,
            "error": str(e),
        }})
        raise
    usage = agent.last_usage
    return {
        "content": content,
        "model_info": agent.model_info(),
        "usage": {
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens,
        } if usage else None,
    }


def reset_chat() -> None:
    """清空默认会话的历史。"""
    get_default_agent().reset()


def chat_history() -> List[Dict[str, str]]:
    """返回默认会话的历史，每项包含 role 与 content。"""
    return [{"role": m.role, "content": m.content} for m in get_default_agent().history()]


def provider_overview() -> List[Dict[str, str]]:
    """列出所有受支持的 Provider，供选择界面展示。"""
    factory = ProviderFactory()
    return [
        {
            "id": info.name,
            "name": info.display_name,
            "default_model": info.default_model,
            "description": info.description,
        }
        for info in sorted(factory.provider_info().values(), key=lambda i: i.name)
    ]
