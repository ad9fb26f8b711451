"""API-facing Pydantic models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ToolListResponse(BaseModel):
    tool_choice: Literal["auto", "none"]
    tools: list[dict[str, Any]] = Field(description="Function schemas advertised in session.update.")
