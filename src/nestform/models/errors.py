"""Error payload model shared by editor consumers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["ErrorResponse"]


class ErrorResponse(BaseModel):
    """Standardised error payload a UI layer can render or forward."""

    model_config = ConfigDict(extra="forbid")

    code: str = Field(min_length=1)
    message: str = Field(min_length=1)
    details: dict[str, Any] = Field(default_factory=dict)
    status_code: int = Field(ge=400, le=599)
