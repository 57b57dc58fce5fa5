"""
File collaborator used for document reads and writes.

``LocalFileSystem`` runs blocking file I/O in a worker thread so model calls
and other coroutines keep running while a document is written.
"""

import asyncio
from pathlib import Path
from typing import Protocol, Union

from .exceptions import (
    DocumentEncodingError,
    DocumentNotFoundError,
    FileOperationError,
    FilePermissionError,
    FileWriteError,
)
from ..utils.logging import get_logger


class FileSystem(Protocol):
    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def exists(self, path: str) -> bool: ...


class LocalFileSystem:
    """Reads and writes UTF-8 files, resolving relative paths against ``root``."""

    def __init__(self, root: Union[str, Path] = "."):
        self.logger = get_logger(__name__)
        self.root = Path(root).expanduser()

    def resolve(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        return candidate if candidate.is_absolute() else self.root / candidate

    async def read_file(self, path: str) -> str:
        target = self.resolve(path)
        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8")
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"Document not found: {path}", str(target)) from e
        except IsADirectoryError as e:
            raise DocumentNotFoundError(f"Not a file: {path}", str(target)) from e
        except PermissionError as e:
            raise FilePermissionError(f"Permission denied reading {path}", str(target)) from e
        except UnicodeDecodeError as e:
            raise DocumentEncodingError(
                f"{path} is not valid UTF-8 text (byte {e.start})", str(target), details={"encoding": e.encoding}
            ) from e
        except OSError as e:
            raise FileOperationError(f"Could not read {path}: {e}", str(target), recoverable=True) from e

    async def write_file(self, path: str, content: str) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(self._write, target, content)
        except PermissionError as e:
            raise FilePermissionError(f"Permission denied writing {path}", str(target)) from e
        except OSError as e:
            raise FileWriteError(f"Could not write {path}: {e}", str(target)) from e
        self.logger.debug(f"Wrote {len(content)} characters to {target}")

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_file)

    @staticmethod
    def _write(target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
