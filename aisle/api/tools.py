"""
Tool API.

GET  /v1/tools?category=   Function definitions for the planner model
POST /v1/tools/{tool_name}  Execute one tool call, body = parameters
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Identity, enforce_rate_limit, get_db
from ..services import realtime
from ..tools.executor import execute_tool_call
from ..tools.registry import get_tools_for_llm
from ..tools.results import ErrorKind, ToolContext

logger = logging.getLogger(__name__)

tools_router = APIRouter(prefix="/tools", tags=["tools"])

_STATUS_BY_KIND = {
    ErrorKind.CONFLICT: 409,
    ErrorKind.PERSISTENCE: 500,
    ErrorKind.INTERNAL: 500,
}


@tools_router.get("")
async def list_tools(category: Optional[str] = None):
    return {"tools": get_tools_for_llm(category)}


@tools_router.post("/{tool_name}")
async def run_tool(
    tool_name: str,
    params: Optional[dict[str, Any]] = Body(default=None),
    identity: Identity = Depends(enforce_rate_limit),
    db: AsyncSession = Depends(get_db),
):
    context = ToolContext(tenant_id=identity.tenant_id, user_id=identity.user_id)
    result = await execute_tool_call(tool_name, params, context, db)

    status_code = _STATUS_BY_KIND.get(result.error_kind, 200)
    if result.success:
        await db.commit()
        if result.changed:
            await realtime.planner_updated(identity.tenant_id, tool_name)
    else:
        # A failed lookup may have created an empty page on the way
        await db.rollback()

    return JSONResponse(status_code=status_code, content=result.to_dict())
