from __future__ import annotations

import re
from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from resumate.core.config import settings

_OWNER_ID_RE = re.compile(r"^[A-Za-z0-9_\-]{3,128}$")


@dataclass(frozen=True)
class AnalysisContext:
    """Caller identity handed explicitly to the pipeline and the stores."""

    owner_id: str
    credentials: str | None = None


def check_api_key(x_api_key: str | None) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid API key.",
        )


def require_context(
    x_owner_id: str | None = Header(default=None, alias="X-Owner-Id"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AnalysisContext:
    check_api_key(x_api_key)
    owner_id = (x_owner_id or "").strip()
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please log in to continue.",
        )
    if not _OWNER_ID_RE.match(owner_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid owner id.",
        )
    return AnalysisContext(owner_id=owner_id, credentials=x_api_key)
