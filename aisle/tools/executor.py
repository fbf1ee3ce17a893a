"""
Tool executor: runs one model-issued tool call against the tenant's data.

Contract: never raises. Unknown tools, bad parameters, missing entities,
stale page writes and store errors all come back as ToolResult failures.
The caller owns the transaction and commits on success.
"""

import logging
import time
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.guardrails import assess_tool_risk
from .registry import get_tool, ToolName
from .results import ErrorKind, ToolContext, ToolResult

logger = logging.getLogger(__name__)


def _validation_message(tool_name: str, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid")
        problems.append(f"{where}: {msg}" if where else msg)
    return f"Invalid parameters for {tool_name}: " + "; ".join(problems)


async def execute_tool_call(
    tool_name: str,
    params: Optional[dict[str, Any]],
    context: ToolContext,
    db: AsyncSession,
) -> ToolResult:
    try:
        name = ToolName(tool_name)
    except ValueError:
        logger.warning("Unknown tool requested: %s (tenant=%s)", tool_name, context.tenant_id)
        return ToolResult.fail(ErrorKind.UNKNOWN_TOOL, f"Unknown tool: {tool_name}")

    registered = get_tool(name)
    if registered is None:
        return ToolResult.fail(ErrorKind.UNKNOWN_TOOL, f"Tool {tool_name} is not available")

    if params is not None and not isinstance(params, dict):
        return ToolResult.fail(ErrorKind.VALIDATION, f"Parameters for {tool_name} must be an object")

    try:
        parsed = registered.params_model.model_validate(params or {})
    except ValidationError as e:
        message = _validation_message(tool_name, e)
        logger.info("Tool %s rejected params: %s", tool_name, message)
        return ToolResult.fail(ErrorKind.VALIDATION, message)

    assess_tool_risk(name.value, registered.risk.value)
    logger.info("Executing tool: %s (tenant=%s)", name.value, context.tenant_id)
    start = time.monotonic()

    try:
        result = await registered.handler(parsed, context, db)
        # Surface version conflicts and constraint errors here, not at commit
        await db.flush()
    except StaleDataError:
        await db.rollback()
        logger.warning(
            "Tool %s lost a write race (tenant=%s), page changed since it was read",
            name.value, context.tenant_id,
        )
        return ToolResult.fail(
            ErrorKind.CONFLICT,
            "That list was changed by someone else a moment ago. Nothing was saved, please try again.",
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Tool %s failed to persist (tenant=%s): %s", name.value, context.tenant_id, e)
        return ToolResult.fail(ErrorKind.PERSISTENCE, "Couldn't save that change. Nothing was saved.")
    except Exception as e:
        await db.rollback()
        logger.exception("Tool %s crashed (tenant=%s)", name.value, context.tenant_id)
        return ToolResult.fail(ErrorKind.INTERNAL, f"Tool execution failed: {e}")

    logger.info(
        "Tool %s → %s in %dms",
        name.value, "ok" if result.success else result.error_kind.value, int((time.monotonic() - start) * 1000),
    )
    return result
