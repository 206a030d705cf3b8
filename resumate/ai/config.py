import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    temperature: float = 0.7
    max_output_tokens: int = 8192
    top_p: float = 0.95
    top_k: int = 40


def load_ai_config() -> AIConfig:
    provider = (os.getenv("AI_PROVIDER") or "gemini").strip().lower()
    default_model = "gpt-4o-mini" if provider == "openai" else "gemini-2.5-pro"
    model = (os.getenv("AI_MODEL") or default_model).strip()
    return AIConfig(
        provider=provider,
        model=model,
        temperature=_env_float("AI_TEMPERATURE", 0.7),
        max_output_tokens=_env_int("AI_MAX_OUTPUT_TOKENS", 8192),
        top_p=_env_float("AI_TOP_P", 0.95),
        top_k=_env_int("AI_TOP_K", 40),
    )
