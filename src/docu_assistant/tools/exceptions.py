"""
File and tool exceptions.

These carry enough context for the recovery layer to decide whether the
user can fix the problem (wrong path, missing permission) or whether it is
an I/O failure worth retrying.
"""

from typing import Optional, Dict, Any

from ..utils.error_handling import DocuAssistantError


class FileOperationError(DocuAssistantError):
    """Base exception for file collaborator failures."""

    error_type = "execution"

    def __init__(
        self,
        message: str,
        path: str,
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.path = path
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "path": self.path,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class DocumentNotFoundError(FileOperationError):
    """The document does not exist."""
    error_type = "validation"


class FilePermissionError(FileOperationError):
    """The process may not read or write the document."""
    error_type = "validation"


class DocumentEncodingError(FileOperationError):
    """The document is not valid UTF-8 text."""
    error_type = "validation"


class FileWriteError(FileOperationError):
    """Writing failed for a reason other than permissions (disk full, I/O)."""

    def __init__(self, message: str, path: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, path, recoverable=True, details=details)


class ToolNotFoundError(DocuAssistantError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str, available: Optional[list] = None):
        super().__init__(
            f"Tool '{tool_name}' not found",
            details={"available_tools": sorted(available or [])}
        )
        self.tool_name = tool_name
