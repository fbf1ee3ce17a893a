"""
Task board tools.
"""

from typing import Literal, Optional

from pydantic import Field, model_validator

from ..models.base import new_uuid, utcnow
from .matching import EntityId, resolve_item
from .pages import get_or_create_page, read_fields, save_fields
from .registry import tool, ToolName, ToolParams, ToolRisk
from .results import ToolResult

TEMPLATE = "task-board"


class AddTaskParams(ToolParams):
    title: str = Field(min_length=1)
    due_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    assignee: str = Field(default="both", description="partner1, partner2 or both")
    priority: Literal["low", "medium", "high"] = "medium"
    category: Optional[str] = None


class TaskTargetParams(ToolParams):
    task_id: EntityId = None
    task_title: Optional[str] = Field(default=None, description="Full or partial task title")

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.task_id and not self.task_title:
            raise ValueError("Provide taskId or taskTitle to say which task")
        return self


@tool(
    name=ToolName.ADD_TASK,
    description="Add a to-do to the couple's task board.",
    params=AddTaskParams,
    category="tasks",
)
async def add_task(params: AddTaskParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    task = {
        "id": new_uuid(),
        "title": params.title,
        "dueDate": params.due_date,
        "assignee": params.assignee,
        "priority": params.priority,
        "category": params.category or "",
        "status": "todo",
        "createdAt": utcnow().isoformat(),
    }
    fields["tasks"].append(task)
    save_fields(page, fields)
    return ToolResult.ok(f'Added task: "{params.title}"', data=task)


@tool(
    name=ToolName.COMPLETE_TASK,
    description="Mark a task done. Find it by taskId or by a full or partial taskTitle.",
    params=TaskTargetParams,
    category="tasks",
)
async def complete_task(params: TaskTargetParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)

    found = resolve_item(fields["tasks"], params.task_id, params.task_title, ("title",), "task")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    task = found.item
    task["status"] = "done"
    task["completedAt"] = utcnow().isoformat()
    save_fields(page, fields)
    return ToolResult.ok(f'Completed task: "{task.get("title")}"', data=task)


@tool(
    name=ToolName.DELETE_TASK,
    description="Remove a task. Find it by taskId or by a full or partial taskTitle.",
    params=TaskTargetParams,
    risk=ToolRisk.DANGEROUS,
    category="tasks",
)
async def delete_task(params: TaskTargetParams, ctx, db) -> ToolResult:
    page = await get_or_create_page(db, ctx.tenant_id, TEMPLATE)
    fields = read_fields(page)
    tasks = fields["tasks"]

    found = resolve_item(tasks, params.task_id, params.task_title, ("title",), "task")
    if not found.found:
        return ToolResult.fail(found.error_kind, found.message)

    removed = tasks.pop(found.index)
    save_fields(page, fields)
    return ToolResult.ok(f'Removed task: "{removed.get("title")}"', data=removed)
