"""
Result and schema types shared by the document tools.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ToolStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NOT_FOUND = "not_found"


@dataclass
class ToolResult:
    """Outcome of one tool call; ``output`` is the file content, path or flag the tool produced."""
    success: bool
    output: Any
    message: str
    status: ToolStatus = ToolStatus.SUCCESS
    error: Optional[Exception] = None
    suggested_next_actions: List[str] = field(default_factory=list)
    execution_time_ms: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # A failed result never reports SUCCESS, whatever the caller passed
        if not self.success and self.status is ToolStatus.SUCCESS:
            self.status = ToolStatus.FAILURE

    @classmethod
    def failed(cls, message: str, error: Optional[Exception] = None, **kwargs) -> "ToolResult":
        return cls(success=False, output=None, message=message, error=error, **kwargs)

    @property
    def document_path(self) -> Optional[str]:
        return self.metadata.get("path")


@dataclass
class ToolSchema:
    """Name, description and parameter names of a tool."""
    name: str
    description: str
    required_params: List[str] = field(default_factory=list)
    optional_params: List[str] = field(default_factory=list)

    @property
    def accepted_params(self) -> List[str]:
        return self.required_params + self.optional_params
