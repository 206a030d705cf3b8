from typing import Protocol

from resumate.parsing.models import RasterImage


class AIClient(Protocol):
    async def generate(self, image: RasterImage, instructions: str) -> str: ...
