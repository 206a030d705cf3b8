from __future__ import annotations

import base64
import os
from typing import Optional

from openai import AsyncOpenAI

from resumate.parsing.models import RasterImage


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 60.0,
        max_retries: int = 0,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
    ):
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        # One model call per analysis attempt; the SDK's own retries stay off by default.
        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
            max_retries=int(os.getenv("OPENAI_MAX_RETRIES", str(max_retries))),
        )

    async def generate(self, image: RasterImage, instructions: str) -> str:
        encoded = base64.b64encode(image.data).decode("utf-8")
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instructions},
                        {"type": "image_url", "image_url": {"url": f"data:{image.mime_type};base64,{encoded}"}},
                    ],
                },
            ],
            temperature=self._temperature,
            max_tokens=self._max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        return str(content or "")
