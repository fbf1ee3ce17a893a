"""
Tool results. Soft failures travel back to the model as data, never as exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    UNKNOWN_TOOL = "unknown_tool"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    CONFLICT = "conflict"        # page changed since it was read
    PERSISTENCE = "persistence"  # store write failed
    INTERNAL = "internal"


@dataclass
class ToolContext:
    tenant_id: str
    user_id: str = ""


@dataclass
class ToolResult:
    success: bool
    message: str
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    artifact: Optional[dict] = None  # {"type": "...", "data": {...}} for the UI
    changed: bool = field(default=False, repr=False)  # a planner entity was written

    @classmethod
    def ok(cls, message: str, data: Any = None, artifact: Optional[dict] = None, changed: bool = True):
        return cls(success=True, message=message, data=data, artifact=artifact, changed=changed)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, data: Any = None):
        return cls(success=False, message=message, error=message, error_kind=kind, data=data)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        if self.artifact is not None:
            out["artifact"] = self.artifact
        if not self.success:
            out["error"] = self.error
            out["errorKind"] = self.error_kind.value if self.error_kind else None
        return out
