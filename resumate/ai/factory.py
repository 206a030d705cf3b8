from resumate.ai.config import load_ai_config
from resumate.ai.types import AIClient

from resumate.ai.providers.gemini_provider import GeminiProvider
from resumate.ai.providers.openai_provider import OpenAIProvider


def get_ai_client() -> AIClient:
    cfg = load_ai_config()

    if cfg.provider == "gemini":
        return GeminiProvider(
            model=cfg.model,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
            top_p=cfg.top_p,
            top_k=cfg.top_k,
        )

    if cfg.provider == "openai":
        return OpenAIProvider(
            model=cfg.model,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")


def model_name() -> str:
    return load_ai_config().model
