"""
Pydantic models for document assistant configuration.

Each section maps to one top-level key in the YAML configuration files and
to one ``DOCU_<SECTION>__<FIELD>`` environment variable prefix.
"""

from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Provider(str, Enum):
    """Supported language-model providers."""
    OLLAMA = "ollama"
    FAKE = "fake"


class AppConfig(BaseModel):
    """Application-level configuration settings."""

    name: str = Field(default="Docu Assistant", description="Application display name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    verbose_logging: bool = Field(default=False, description="Enable verbose debug logging")
    data_dir: str = Field(default="~/.docu-assistant", description="Application data directory")

    log_file: Optional[str] = Field(default=None, description="JSON log file location (disabled when unset)")
    max_log_size_mb: int = Field(default=10, ge=1, le=1000, description="Maximum log file size")
    backup_count: int = Field(default=5, ge=1, le=100, description="Number of backup log files")

    @field_validator('data_dir', 'log_file')
    @classmethod
    def expand_path(cls, v):
        """Expand user home directory in paths."""
        if v is None:
            return v
        return str(Path(v).expanduser())


DEFAULT_MODEL = "llama3.1:8b"


class LLMConfig(BaseModel):
    """Language model collaborator configuration."""

    provider: Provider = Field(default=Provider.OLLAMA, description="Model provider")
    model: str = Field(default=DEFAULT_MODEL, description="Model name")
    base_url: str = Field(default="http://localhost:11434", description="Provider base URL")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Response randomness")
    timeout_seconds: float = Field(default=120.0, ge=1.0, le=600.0, description="Per-call timeout")
    offline_fallback: bool = Field(default=True, description="Answer with canned responses when the model returns nothing")
    fallback_seed: Optional[int] = Field(default=None, description="Seed for canned response selection (round-robin when unset)")
    fake_responses: List[str] = Field(
        default_factory=lambda: ["Thanks, noted. What else should the document cover?"],
        description="Responses returned by the 'fake' provider"
    )


class AutoChatConfig(BaseModel):
    """Auto-chat session behaviour."""

    enabled: bool = Field(default=True, description="Allow commands to hand off into auto-chat")
    timeout_minutes: float = Field(default=30.0, gt=0, le=24 * 60, description="Inactivity timeout")
    enable_document_updates: bool = Field(default=True, description="Apply extracted content to the target document")
    enable_after_document_creation: bool = Field(default=True, description="Open a conversation after /new when requested")
    show_progress_indicators: bool = Field(default=True, description="Report section progress after each turn")


class CommandsConfig(BaseModel):
    """Slash-command surface configuration."""

    prefix: str = Field(default="/", description="Prefix that marks a line as a command")

    @field_validator('prefix')
    @classmethod
    def validate_prefix(cls, v):
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("command prefix must be non-empty and contain no whitespace")
        return v


class DocumentsConfig(BaseModel):
    """Where documents are created and which template is the default."""

    workspace_root: str = Field(default=".", description="Root directory for document files")
    output_dir: str = Field(default="docs", description="Directory for new documents, relative to the workspace")
    default_template: str = Field(default="basic", description="Template used by /new without --template")

    @field_validator('workspace_root')
    @classmethod
    def expand_workspace(cls, v):
        return str(Path(v).expanduser())


class RecoveryConfig(BaseModel):
    """Delays suggested to callers before retrying transient failures."""

    network_retry_delay_seconds: float = Field(default=2.0, ge=0.0, le=300.0)
    rate_limit_retry_delay_seconds: float = Field(default=30.0, ge=0.0, le=3600.0)


class StorageConfig(BaseModel):
    """Persistence of the single auto-chat state record."""

    state_file: Optional[str] = Field(
        default="~/.docu-assistant/state.json",
        description="JSON key-value file; in-memory only when unset"
    )

    @field_validator('state_file')
    @classmethod
    def expand_state_file(cls, v):
        if v is None:
            return v
        return str(Path(v).expanduser())


class DocuAssistantConfig(BaseModel):
    """Main configuration model."""

    app: AppConfig = Field(default_factory=AppConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    auto_chat: AutoChatConfig = Field(default_factory=AutoChatConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    # Allow additional fields for forward compatibility
    class Config:
        extra = "allow"
        validate_assignment = True

    @model_validator(mode='after')
    def validate_config_consistency(self):
        """Fake provider needs at least one scripted response."""
        if self.llm.provider == Provider.FAKE and not self.llm.fake_responses:
            raise ValueError("llm.fake_responses must not be empty when provider is 'fake'")
        return self
