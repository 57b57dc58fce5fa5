"""
Typed tool invocation.

Command handlers reach the file system through ``ToolInvoker.execute(name,
params)``. The invoker never raises: unknown tools, bad parameters and file
errors all come back as a failed ``ToolResult`` carrying the original error.
"""

import time
from typing import Any, Dict, List, Optional

from .base import BaseTool, FileExistsTool, ReadFileTool, WriteFileTool
from .exceptions import FileOperationError, ToolNotFoundError
from .file_system import FileSystem
from .types import ToolResult, ToolStatus
from ..utils.error_handling import DocuAssistantError
from ..utils.logging import get_logger


class ToolInvoker:
    """Registry and executor for tools."""

    def __init__(self, tools: Optional[List[BaseTool]] = None):
        self.logger = get_logger(__name__)
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    @classmethod
    def with_file_tools(cls, file_system: FileSystem) -> "ToolInvoker":
        return cls([ReadFileTool(file_system), WriteFileTool(file_system), FileExistsTool(file_system)])

    def register(self, tool: BaseTool) -> None:
        name = tool.name
        if name in self._tools:
            self.logger.warning(f"Replacing registered tool: {name}")
        self._tools[name] = tool
        self.logger.debug(f"Registered tool: {name}")

    def list_tools(self) -> List[str]:
        return sorted(self._tools)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    async def execute(self, name: str, params: Optional[Dict[str, Any]] = None) -> ToolResult:
        params = dict(params or {})
        tool = self._tools.get(name)
        if tool is None:
            error = ToolNotFoundError(name, list(self._tools))
            return ToolResult.failed(error.message, error, status=ToolStatus.NOT_FOUND, metadata=error.details)

        start = time.perf_counter()
        try:
            tool.validate_params(params)
            result = await tool.execute(params)
        except FileOperationError as e:
            self.logger.warning(f"Tool {name} failed: {e.message}")
            result = ToolResult.failed(
                e.message,
                e,
                suggested_next_actions=["check the file path and permissions"],
                metadata=e.to_dict(),
            )
        except DocuAssistantError as e:
            self.logger.warning(f"Tool {name} failed: {e.message}")
            result = ToolResult.failed(e.message, e, metadata=e.details)

        result.execution_time_ms = (time.perf_counter() - start) * 1000
        return result
