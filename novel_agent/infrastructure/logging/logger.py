import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from novel_agent.config.settings import settings


# 可能包含模型输出或用户输入的结构化字段，脱敏时只保留长度
CONTENT_FIELDS = frozenset({"chunk", "content", "user_input"})


def redact_fields(fields: dict) -> dict:
    redacted = dict(fields)
    for key in redacted.keys() & CONTENT_FIELDS:
        value = redacted[key]
        if isinstance(value, str):
            redacted[key] = f"<redacted {len(value)} chars>"
    return redacted


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if settings.log_redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(redact_fields(extra) if settings.log_redact_content else extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("novel_agent")
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    # 重复导入时不要叠加 handler
    if any(getattr(h, "_novel_agent", False) for h in logger.handlers):
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(JsonFormatter())
    fh._novel_agent = True  # type: ignore[attr-defined]
    logger.addHandler(fh)
    return logger


logger = setup_logger()


def log_event(level: int, message: str, **fields) -> None:
    """输出一条带结构化字段的日志，字段会合并进 JSON 行。"""
    logger.log(level, message, extra={"extra": fields})
