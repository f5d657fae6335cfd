"""Tests for configuration loading and override behavior."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from medgraph.utils.config import Config, get_config, load_config, reset_config


@pytest.fixture(autouse=True)
def _reset_global_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure config singleton doesn't leak between tests."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    monkeypatch.delenv("SESSION__FALLBACK_MESSAGE", raising=False)
    reset_config()
    yield
    reset_config()


def _write_yaml(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


def test_yaml_loads_values(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(
        cfg_path,
        {
            "response": {"llm": {"model": "yaml-model"}},
            "formatting": {"trial_base_url": "https://example.org/ct"},
        },
    )

    cfg = load_config(cfg_path)

    assert cfg.response.llm.model == "yaml-model"
    assert cfg.formatting.trial_base_url == "https://example.org/ct"
    assert cfg.synthesis.llm.model == "gpt-4.1-mini"
    assert get_config() is cfg


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, {"session": {"fallback_message": "yaml fallback"}})

    monkeypatch.setenv("SESSION__FALLBACK_MESSAGE", "env fallback")

    cfg = load_config(cfg_path)

    assert cfg.session.fallback_message == "env fallback"
    assert cfg.openai_api_key == "sk-test-key"


def test_invalid_yaml_root_type_raises(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(yaml.safe_dump(["not", "a", "mapping"]), encoding="utf-8")

    with pytest.raises(ValueError, match="YAML config root must be a mapping"):
        load_config(cfg_path)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_get_config_requires_load() -> None:
    with pytest.raises(RuntimeError, match="not initialized"):
        get_config()


def test_validate_requires_provider_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    cfg = Config(openai_api_key="", _env_file=None)

    with pytest.raises(ValueError, match="OpenAI API key required"):
        cfg.validate_config()


def test_repository_config_is_valid() -> None:
    cfg = load_config(Path(__file__).resolve().parent.parent / "config" / "config.yaml")

    assert cfg.extraction.llm.temperature == 0.0
    assert cfg.prompts_path.exists()


def test_unprefixed_env_does_not_leak_into_sections(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_yaml(cfg_path, {"logging": {"level": "DEBUG"}})

    monkeypatch.setenv("MODEL", "leaked-model")
    monkeypatch.setenv("FALLBACK_MESSAGE", "leaked fallback")
    monkeypatch.setenv("FORMAT", "json")

    cfg = load_config(cfg_path)

    assert cfg.extraction.llm.model == "gpt-4.1-mini"
    assert cfg.session.fallback_message.startswith("I encountered an error")
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.format == "text"
