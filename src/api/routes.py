"""HTTP routes exposing relay metadata."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_tool_registry
from api.schemas import ToolListResponse
from tools.base import ToolRegistry

router = APIRouter()


@router.get("/tools", response_model=ToolListResponse)
async def list_tools(registry: ToolRegistry = Depends(get_tool_registry)) -> ToolListResponse:
    schemas: list[dict[str, Any]] = registry.schemas()
    return ToolListResponse(
        tool_choice="auto" if schemas else "none",
        tools=schemas,
    )
