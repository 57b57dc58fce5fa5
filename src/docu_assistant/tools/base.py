"""
Base class and built-in tools for document file operations.

Each tool validates its parameters, calls the file collaborator and reports
the outcome as a ``ToolResult``. File errors are raised as typed
``FileOperationError`` subclasses and turned into failed results by the
``ToolInvoker``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from .file_system import FileSystem
from .types import ToolResult, ToolSchema
from ..utils.error_handling import ValidationError, handle_tool_execution
from ..utils.logging import get_logger


class BaseTool(ABC):
    """A named operation the invoker can execute with keyword parameters."""

    def __init__(self, file_system: FileSystem):
        self.file_system = file_system
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def get_schema(self) -> ToolSchema:
        pass

    @abstractmethod
    async def execute(self, params: Dict[str, Any]) -> ToolResult:
        pass

    @property
    def name(self) -> str:
        return self.get_schema().name

    def validate_params(self, params: Dict[str, Any]) -> None:
        schema = self.get_schema()
        missing = [p for p in schema.required_params if params.get(p) is None]
        if missing:
            raise ValidationError(
                f"{schema.name} is missing required parameters: {', '.join(missing)}",
                details={"missing": missing},
            )
        unknown = set(params) - set(schema.accepted_params)
        if unknown:
            raise ValidationError(
                f"{schema.name} got unexpected parameters: {', '.join(sorted(unknown))}",
                details={"unknown": sorted(unknown)},
            )


class ReadFileTool(BaseTool):

    def get_schema(self) -> ToolSchema:
        return ToolSchema(
            name="read_file",
            description="Read a document from the workspace",
            required_params=["path"],
        )

    @handle_tool_execution("read_file")
    async def execute(self, params: Dict[str, Any]) -> ToolResult:
        content = await self.file_system.read_file(str(params["path"]))
        return ToolResult(
            success=True,
            output=content,
            message=f"Read {len(content)} characters from {params['path']}",
            metadata={"path": params["path"]},
        )


class WriteFileTool(BaseTool):

    def get_schema(self) -> ToolSchema:
        return ToolSchema(
            name="write_file",
            description="Write a document to the workspace",
            required_params=["path", "content"],
            optional_params=["overwrite"],
        )

    @handle_tool_execution("write_file")
    async def execute(self, params: Dict[str, Any]) -> ToolResult:
        path = str(params["path"])
        overwrite = bool(params.get("overwrite", True))

        if not overwrite and await self.file_system.exists(path):
            return ToolResult.failed(
                f"{path} already exists",
                suggested_next_actions=["choose a different --path", "use /update to edit the document"],
                metadata={"path": path},
            )

        await self.file_system.write_file(path, str(params["content"]))
        return ToolResult(
            success=True,
            output=path,
            message=f"Wrote {path}",
            metadata={"path": path, "characters": len(str(params["content"]))},
        )


class FileExistsTool(BaseTool):

    def get_schema(self) -> ToolSchema:
        return ToolSchema(
            name="file_exists",
            description="Check whether a document exists",
            required_params=["path"],
        )

    async def execute(self, params: Dict[str, Any]) -> ToolResult:
        exists = await self.file_system.exists(str(params["path"]))
        return ToolResult(success=True, output=exists, message=f"{params['path']} exists: {exists}")
