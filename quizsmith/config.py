from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "ollama",  # ollama | openai | anthropic | none
    "llm_model": "qwen3:8b",
    "ollama_url": "http://localhost:11434",
    "openai_base_url": "",  # empty: api.openai.com
    "ai_timeout": 45.0,
    "ai_temperature": 0.4,
    "prompt_char_limit": 3000,
    "default_difficulty": "moderate",
    "default_count": 10,
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    openai_base_url: str = DEFAULTS["openai_base_url"]
    ai_timeout: float = DEFAULTS["ai_timeout"]
    ai_temperature: float = DEFAULTS["ai_temperature"]
    prompt_char_limit: int = DEFAULTS["prompt_char_limit"]
    default_difficulty: str = DEFAULTS["default_difficulty"]
    default_count: int = DEFAULTS["default_count"]

    @property
    def ai_enabled(self) -> bool:
        return self.llm_provider not in ("", "none")

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "openai_base_url": self.openai_base_url,
            "ai_timeout": self.ai_timeout,
            "ai_temperature": self.ai_temperature,
            "prompt_char_limit": self.prompt_char_limit,
            "default_difficulty": self.default_difficulty,
            "default_count": self.default_count,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
