import pydantic
import pytest

from novel_agent.config.settings import Settings
from novel_agent.providers import config_from_settings


def isolate(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    names = (
        "NOVEL_AGENT_CONFIG_FILE",
        "ANTHROPIC_API_KEY",
        "DEEPSEEK_API_KEY",
        "ANTHROPIC_BASE_URL",
        "DEEPSEEK_BASE_URL",
        "MAX_TOKENS",
        "TEMPERATURE",
    )
    for name in names:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, tmp_path):
    isolate(monkeypatch, tmp_path)
    s = Settings(_env_file=None)
    assert s.max_tokens == 4096
    assert s.temperature == 0.7
    assert s.anthropic_base_url == "https://api.anthropic.com/v1"
    assert s.deepseek_base_url == "https://api.deepseek.com/v1"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEFAULT_PROVIDER", "deepseek")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-deepseek-from-env")
    monkeypatch.setenv("MAX_TOKENS", "1024")
    s = Settings(_env_file=None)
    assert s.default_provider == "deepseek"
    cfg = config_from_settings("deepseek", s)
    assert cfg.api_key == "sk-deepseek-from-env"
    assert cfg.max_tokens == 1024
    assert cfg.timeout == s.http_timeout


def test_yaml_source(monkeypatch, tmp_path):
    cfg_file = tmp_path / "novel.yaml"
    cfg_file.write_text("default_provider: deepseek\ntemperature: 0.2\nunknown_key: 1\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEFAULT_PROVIDER", raising=False)
    monkeypatch.delenv("TEMPERATURE", raising=False)
    monkeypatch.setenv("NOVEL_AGENT_CONFIG_FILE", str(cfg_file))
    s = Settings(_env_file=None)
    assert s.default_provider == "deepseek"
    assert s.temperature == 0.2


def test_env_beats_yaml(monkeypatch, tmp_path):
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("temperature: 0.2\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEMPERATURE", "0.9")
    s = Settings(_env_file=None)
    assert s.temperature == 0.9


def test_short_api_key_rejected(monkeypatch, tmp_path):
    isolate(monkeypatch, tmp_path)
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, anthropic_api_key="short")


def test_temperature_bounds(monkeypatch, tmp_path):
    isolate(monkeypatch, tmp_path)
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, temperature=3.5)


def test_zero_temperature_survives_config(monkeypatch, tmp_path):
    isolate(monkeypatch, tmp_path)
    s = Settings(_env_file=None, temperature=0.0)
    assert config_from_settings("claude", s).temperature == 0.0
