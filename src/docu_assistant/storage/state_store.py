"""
Key-value persistence for process-wide state.

The only record the assistant persists is the auto-chat session snapshot,
so the stores here are deliberately plain: a dict in memory, or a single
JSON document on disk that is rewritten on every ``set``.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from ..utils.error_handling import StateStoreError
from ..utils.logging import get_logger


class StateStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStore:
    """Non-durable store, used for tests and ``storage.state_file: null``."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStateStore:
    """Durable store backed by one JSON object on disk.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.logger = get_logger(__name__)
        self.path = Path(path).expanduser()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.warning(f"State file {self.path} is corrupt, starting empty: {e}")
            return {}
        except OSError as e:
            raise StateStoreError(f"Cannot read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            self.logger.warning(f"State file {self.path} does not hold an object, starting empty")
            return {}
        return data

    def _flush(self) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".state-", dir=str(self.path.parent))
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StateStoreError(f"Cannot write state file {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


def create_state_store(state_file: Optional[str]) -> StateStore:
    """Store matching ``storage.state_file``: JSON on disk, or memory when unset."""
    if state_file:
        return JsonFileStateStore(state_file)
    return MemoryStateStore()
