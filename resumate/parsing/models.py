from __future__ import annotations

from pydantic import BaseModel, Field


class RasterImage(BaseModel):
    data: bytes
    mime_type: str = "image/png"
    width: int | None = Field(default=None, ge=1)
    height: int | None = Field(default=None, ge=1)
    source_type: str = "pdf"
