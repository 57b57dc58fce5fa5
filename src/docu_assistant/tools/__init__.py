"""
File collaborator and typed tool invocation.

    invoker = ToolInvoker.with_file_tools(LocalFileSystem("./workspace"))
    result = await invoker.execute("read_file", {"path": "docs/prd.md"})
"""

from .base import BaseTool, ReadFileTool, WriteFileTool, FileExistsTool
from .exceptions import (
    FileOperationError,
    DocumentEncodingError,
    DocumentNotFoundError,
    FilePermissionError,
    FileWriteError,
    ToolNotFoundError,
)
from .file_system import FileSystem, LocalFileSystem
from .invoker import ToolInvoker
from .types import ToolResult, ToolSchema, ToolStatus

__all__ = [
    "BaseTool",
    "ReadFileTool",
    "WriteFileTool",
    "FileExistsTool",
    "FileOperationError",
    "DocumentEncodingError",
    "DocumentNotFoundError",
    "FilePermissionError",
    "FileWriteError",
    "ToolNotFoundError",
    "FileSystem",
    "LocalFileSystem",
    "ToolInvoker",
    "ToolResult",
    "ToolSchema",
    "ToolStatus",
]
