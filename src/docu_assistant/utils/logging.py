"""
Logging for the document assistant.

Log lines go to stderr so the chat transcript on stdout stays readable.
When ``app.log_file`` is configured, every record is also appended as one
JSON object per line to a rotating file, including the structured fields the
engines pass through ``extra=`` (session ids, document paths, template ids).

Model endpoints and provider keys can leak into messages through exception
text, so a ``SensitiveDataFilter`` is attached to every handler.
"""

import asyncio
import json
import logging
import logging.handlers
import os
import re
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, Optional


# Fields the engines attach with ``extra=``; copied into JSON records verbatim
CONTEXT_FIELDS = ("session_id", "agent_name", "document_path", "template_id", "newly_completed")

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("langchain_core", "langchain_community", "httpx", "urllib3")


class SensitiveDataFilter(logging.Filter):
    """Redact provider keys, bearer tokens and URL credentials from records."""

    REDACTIONS = (
        (re.compile(r'(api[_-]?key|token|secret|password)(["\s]*[:=]["\s]*)([^\s"\',]{6,})', re.IGNORECASE),
         r'\1\2[redacted]'),
        (re.compile(r'(bearer\s+)[\w.\-]{16,}', re.IGNORECASE), r'\1[redacted]'),
        (re.compile(r'\bsk-[\w\-]{20,}'), 'sk-[redacted]'),
        (re.compile(r'(https?://[^:/\s@]+:)[^@\s]+@'), r'\1[redacted]@'),
    )

    @classmethod
    def redact(cls, text: str) -> str:
        for pattern, replacement in cls.REDACTIONS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.redact(a) if isinstance(a, str) else a for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: self.redact(v) if isinstance(v, str) else v for k, v in record.args.items()}
        return True


class ColoredConsoleFormatter(logging.Formatter):
    """Short console lines with the level name colored when stderr is a terminal."""

    LEVEL_STYLES = {
        logging.DEBUG: '\033[90m',
        logging.INFO: '\033[94m',
        logging.WARNING: '\033[93m',
        logging.ERROR: '\033[91m',
        logging.CRITICAL: '\033[1;95m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, stream=None):
        super().__init__('%(asctime)s %(levelname)-7s %(name)s: %(message)s', datefmt='%H:%M:%S')
        self.use_colors = use_colors and self.stream_supports_color(stream or sys.stderr)

    @staticmethod
    def stream_supports_color(stream) -> bool:
        if os.getenv('NO_COLOR'):
            return False
        if os.getenv('FORCE_COLOR'):
            return True
        return hasattr(stream, 'isatty') and stream.isatty() and os.getenv('TERM', '') != 'dumb'

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().formatMessage(record)

        style = self.LEVEL_STYLES.get(record.levelno, '')
        plain = record.levelname
        record.levelname = f"{style}{plain:<7}{self.RESET}"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = plain


class JSONFileFormatter(logging.Formatter):
    """One JSON object per record, with engine context promoted to top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(timespec='milliseconds'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class PerformanceTimer:
    """Times a block and logs its duration in milliseconds."""

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self._started: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        outcome = "finished" if exc_type is None else f"failed ({exc_type.__name__})"
        self.logger.log(self.level, f"{self.operation} {outcome} in {self.elapsed_ms:.1f} ms")
        return False


def performance_timer(operation: Optional[str] = None, level: int = logging.DEBUG):
    """Decorator that times each call of a sync or async function."""

    def decorator(func: Callable) -> Callable:
        label = operation or func.__qualname__
        logger = get_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with PerformanceTimer(logger, label, level):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceTimer(logger, label, level):
                return func(*args, **kwargs)
        return wrapper

    return decorator


class LoggingManager:
    """Owns the root handlers; configured once per process from ``AppConfig``."""

    def __init__(self):
        self._initialized = False
        self.log_file: Optional[Path] = None

    def setup_logging(self, config, verbose: bool = False, force_reinit: bool = False) -> None:
        if self._initialized and not force_reinit:
            return

        app = config.app
        level = logging.DEBUG if (verbose or app.verbose_logging) else getattr(logging, app.log_level.value, logging.INFO)

        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.setLevel(level)

        handlers = [self._console_handler()]
        if app.log_file:
            file_handler = self._file_handler(Path(app.log_file), app.max_log_size_mb, app.backup_count)
            if file_handler is not None:
                handlers.append(file_handler)

        redactor = SensitiveDataFilter()
        for handler in handlers:
            handler.setLevel(level)
            handler.addFilter(redactor)
            root.addHandler(handler)

        quiet_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(quiet_level)

        self._initialized = True
        get_logger('docu_assistant.logging').debug(
            f"Logging at {logging.getLevelName(level)}"
            + (f", writing JSON records to {self.log_file}" if self.log_file else "")
        )

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColoredConsoleFormatter(stream=sys.stderr))
        return handler

    def _file_handler(self, path: Path, max_size_mb: int, backup_count: int) -> Optional[logging.Handler]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                path, maxBytes=max_size_mb * 1024 * 1024, backupCount=backup_count, encoding='utf-8'
            )
        except OSError as e:
            # Console logging still works; the session should not fail over a log file
            print(f"Warning: could not open log file {path}: {e}", file=sys.stderr)
            return None

        handler.setFormatter(JSONFileFormatter())
        self.log_file = path
        return handler


_logging_manager = LoggingManager()


def setup_logging(config, verbose: bool = False, force_reinit: bool = False) -> None:
    """Configure logging from a ``DocuAssistantConfig`` (idempotent unless ``force_reinit``)."""
    _logging_manager.setup_logging(config, verbose, force_reinit)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_performance(operation: str, level: int = logging.DEBUG):
    """Time the enclosed block under the ``docu_assistant.performance`` logger."""
    with PerformanceTimer(get_logger('docu_assistant.performance'), operation, level) as timer:
        yield timer


def log_startup(config_path: Optional[str] = None) -> None:
    source = f"configuration from {config_path}" if config_path else "built-in configuration"
    get_logger('docu_assistant.startup').info(f"Document assistant starting with {source}")


def log_config_info(config) -> None:
    """Log the settings that shape a chat session."""
    settings: Dict[str, object] = {
        "provider": f"{config.llm.provider.value} ({config.llm.model})",
        "auto_chat_timeout_minutes": config.auto_chat.timeout_minutes,
        "command_prefix": config.commands.prefix,
        "workspace_root": config.documents.workspace_root,
        "state_file": config.storage.state_file or "(memory)",
    }
    logger = get_logger('docu_assistant.config')
    for key, value in settings.items():
        logger.debug(f"{key}: {value}")


def log_shutdown() -> None:
    get_logger('docu_assistant.shutdown').info("Document assistant shutting down")
