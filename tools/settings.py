"""
LLM settings

Provider selection and Ollama connection details, read from the environment
(and a .env file) with optional per-request overrides.
"""
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

PROVIDERS = ("gemini", "ollama")

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3"


@dataclass(frozen=True)
class LlmSettings:
    provider: str = "gemini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    ollama_timeout: float = 120.0

    def __post_init__(self):
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider '{self.provider}'. Expected one of: {', '.join(PROVIDERS)}")

    @property
    def has_gemini_key(self) -> bool:
        return bool(self.gemini_api_key)

    def with_overrides(self, overrides: Optional[Dict[str, Any]]) -> "LlmSettings":
        """
        Apply request-level overrides (provider, ollama_base_url, ollama_model).

        API keys are never taken from overrides.
        """
        if not overrides:
            return self
        changes = {}
        for key in ("provider", "ollama_base_url", "ollama_model"):
            value = overrides.get(key)
            if value:
                changes[key] = str(value)
        if "ollama_base_url" in changes:
            changes["ollama_base_url"] = changes["ollama_base_url"].rstrip("/")
        return replace(self, **changes)


def get_llm_settings() -> LlmSettings:
    """Build settings from environment variables."""
    return LlmSettings(
        provider=os.getenv("LLM_PROVIDER", "gemini").lower(),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_BASE_URL).rstrip("/"),
        ollama_model=os.getenv("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL),
        ollama_timeout=float(os.getenv("OLLAMA_TIMEOUT", "120")),
    )
