"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMPTS_PATH = Path(__file__).resolve().parent.parent / "prompts" / "grounding_prompts.yaml"


class LLMConfig(BaseModel):
    """LLM configuration."""

    provider: Literal["openai", "anthropic"] = "openai"
    model: str = "gpt-4.1-mini"
    temperature: float = 0.1
    max_tokens: int = 2000
    timeout: int = 60
    retry_attempts: int = 1
    base_url: str | None = None

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Validate temperature is between 0 and 1."""
        if not 0 <= v <= 1:
            raise ValueError("Temperature must be between 0 and 1")
        return v


class ExtractionConfig(BaseModel):
    """Triple extraction configuration."""

    llm: LLMConfig = Field(default_factory=lambda: LLMConfig(temperature=0.0))
    prompt_key: str = "triple_extraction"


class SynthesisConfig(BaseModel):
    """Narrative synthesis configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    prompt_key: str = "context_synthesis"


class ResponseConfig(BaseModel):
    """Verified response configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    prompt_key: str = "verified_response"
    insufficient_information_message: str = (
        "I don't have enough verified information to answer that question."
    )


class FormattingConfig(BaseModel):
    """Clinical-trial link formatting configuration."""

    trial_base_url: str = "https://clinicaltrials.gov/study"


class SessionConfig(BaseModel):
    """Session orchestration configuration."""

    fallback_message: str = (
        "I encountered an error processing your medical inquiry. "
        "Please check the clinical guidelines directly."
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    file: str | None = None
    rotation: str = "10 MB"
    retention: int = 3


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    response: ResponseConfig = Field(default_factory=ResponseConfig)
    formatting: FormattingConfig = Field(default_factory=FormattingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Environment variables
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    prompts_path: Path = Field(default=DEFAULT_PROMPTS_PATH)

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _diff_dict(current: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
        """Return the (nested) entries of ``current`` that differ from ``defaults``."""
        diff: Dict[str, Any] = {}
        for key, value in current.items():
            default = defaults.get(key)
            if isinstance(value, dict) and isinstance(default, dict):
                nested = Config._diff_dict(value, default)
                if nested:
                    diff[key] = nested
            elif key not in defaults or value != default:
                diff[key] = value
        return diff

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML file is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only values that differ from the model defaults count as env overrides.
        env_overrides = cls._diff_dict(cls().model_dump(), cls.model_construct().model_dump())
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        stages = {
            "extraction": self.extraction.llm,
            "synthesis": self.synthesis.llm,
            "response": self.response.llm,
        }
        for stage, llm in stages.items():
            if llm.provider == "openai" and not self.openai_api_key:
                # Self-hosted OpenAI-compatible endpoints may not need a key.
                if not llm.base_url or "api.openai.com" in llm.base_url:
                    raise ValueError(f"OpenAI API key required for {stage} stage")
            if llm.provider == "anthropic" and not self.anthropic_api_key:
                raise ValueError(f"Anthropic API key required for {stage} stage")

        if not self.prompts_path.exists():
            raise ValueError(f"Prompt template file not found: {self.prompts_path}")


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get or create global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
