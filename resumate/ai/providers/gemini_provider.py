from __future__ import annotations

import os
from typing import Optional

from google import genai
from google.genai import types

from resumate.parsing.models import RasterImage


class GeminiProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        top_p: float = 0.95,
        top_k: int = 40,
    ):
        self._model = model
        key = (api_key or os.getenv("GEMINI_API_KEY") or "").strip()
        if not key:
            raise RuntimeError("GEMINI_API_KEY is missing")

        self._client = genai.Client(api_key=key)
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            top_p=top_p,
            top_k=top_k,
        )

    async def generate(self, image: RasterImage, instructions: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=[
                instructions,
                types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            ],
            config=self._config,
        )
        return response.text or ""
