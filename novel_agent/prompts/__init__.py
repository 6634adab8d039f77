"""系统提示词加载工具。

按 Agent 类型和语言(locale) 从 prompts/<locale> 目录读取 system prompt 文本，
会话把它作为每次调用的系统提示词传给 Provider。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

_PROMPT_FILES = {
    "novel": "novel_system.md",
}


def load_system_prompt(agent_type: str = "novel", locale: str = "zh") -> str:
    """根据 Agent 类型和语言加载系统提示词文本。

    未登记的 agent_type 抛出 KeyError。
    """

    fname = PROMPTS_DIR / locale / _PROMPT_FILES[agent_type]
    return fname.read_text(encoding="utf-8").strip()
