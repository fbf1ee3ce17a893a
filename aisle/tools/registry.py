"""
Tool registry.

Every tool the planner model may call is a member of ToolName and is
registered exactly once with:
  - a pydantic parameter model (camelCase from the model, snake_case internally)
  - a description written like docs for a new hire
  - a risk level for guardrails

get_tools_for_llm() turns the registry into OpenAI function definitions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    # Budget
    ADD_BUDGET_ITEM = "add_budget_item"
    UPDATE_BUDGET_ITEM = "update_budget_item"
    DELETE_BUDGET_ITEM = "delete_budget_item"
    SET_TOTAL_BUDGET = "set_total_budget"
    # Guests
    ADD_GUEST = "add_guest"
    UPDATE_GUEST = "update_guest"
    DELETE_GUEST = "delete_guest"
    ADD_GUEST_GROUP = "add_guest_group"
    # Vendors
    ADD_VENDOR = "add_vendor"
    UPDATE_VENDOR_STATUS = "update_vendor_status"
    DELETE_VENDOR = "delete_vendor"
    # Tasks
    ADD_TASK = "add_task"
    COMPLETE_TASK = "complete_task"
    DELETE_TASK = "delete_task"
    # Timeline
    ADD_DAY_OF_EVENT = "add_day_of_event"
    # Decisions
    UPDATE_DECISION = "update_decision"
    LOCK_DECISION = "lock_decision"
    SKIP_DECISION = "skip_decision"
    GET_DECISION_STATUS = "get_decision_status"
    SHOW_CHECKLIST = "show_checklist"
    ADD_CUSTOM_DECISION = "add_custom_decision"
    # Kernel
    UPDATE_WEDDING_DETAILS = "update_wedding_details"
    UPDATE_PREFERENCES = "update_preferences"
    # Analysis
    ANALYZE_PLANNING_GAPS = "analyze_planning_gaps"
    SHOW_ARTIFACT = "show_artifact"


class ToolRisk(str, Enum):
    """Risk classification for guardrails."""
    READ = "read"            # Read-only, no side effects
    WRITE = "write"          # Creates/modifies data
    DANGEROUS = "dangerous"  # Removes data


class ToolParams(BaseModel):
    """Base for tool parameters. Accepts camelCase or snake_case keys, drops unknown ones."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class NoParams(ToolParams):
    pass


@dataclass
class RegisteredTool:
    name: ToolName
    description: str
    params_model: Type[ToolParams]
    handler: Callable[..., Awaitable]
    risk: ToolRisk
    category: str


_tools: dict[ToolName, RegisteredTool] = {}


def tool(
    name: ToolName,
    description: str,
    params: Type[ToolParams] = NoParams,
    risk: ToolRisk = ToolRisk.WRITE,
    category: str = "general",
):
    """
    Decorator to register a handler as an LLM-callable tool.

    The handler is called as handler(params, ctx, db) and returns a ToolResult.
    """

    def decorator(func: Callable):
        if name in _tools:
            raise ValueError(f"Tool {name.value} registered twice")
        _tools[name] = RegisteredTool(
            name=name,
            description=description,
            params_model=params,
            handler=func,
            risk=risk,
            category=category,
        )
        logger.debug("Registered tool: %s [%s/%s]", name.value, category, risk.value)
        return func

    return decorator


def _schema_for(model: Type[ToolParams]) -> dict:
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    schema.setdefault("properties", {})
    schema["type"] = "object"
    return schema


def get_tools_for_llm(category: Optional[str] = None) -> list[dict]:
    """All tools (or one category) formatted for OpenAI function calling."""
    init_tools()
    tools = get_tools_by_category(category) if category else list(_tools.values())
    return [
        {
            "type": "function",
            "function": {
                "name": t.name.value,
                "description": t.description,
                "parameters": _schema_for(t.params_model),
            },
        }
        for t in tools
    ]


def get_tool(name: ToolName) -> Optional[RegisteredTool]:
    init_tools()
    return _tools.get(name)


def get_tools_by_category(category: str) -> list[RegisteredTool]:
    init_tools()
    return [t for t in _tools.values() if t.category == category]


_initialized = False


def init_tools() -> None:
    """Import tool modules to trigger registration. Idempotent."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    from . import budget     # noqa: F401
    from . import guests     # noqa: F401
    from . import vendors    # noqa: F401
    from . import tasks      # noqa: F401
    from . import timeline   # noqa: F401
    from . import decisions  # noqa: F401
    from . import wedding    # noqa: F401

    missing = [n.value for n in ToolName if n not in _tools]
    if missing:
        logger.error("Tools declared without a handler: %s", ", ".join(missing))

    logger.info("Tools ready: %d tools [%s]", len(_tools), ", ".join(n.value for n in _tools))
