"""
Shared pytest configuration for Docu Assistant tests.

This file provides shared fixtures and configuration for all test modules.
"""

import pytest

from docu_assistant.config.models import DocuAssistantConfig, LLMConfig, Provider, StorageConfig
from docu_assistant.storage.state_store import MemoryStateStore
from docu_assistant.templates.registry import TemplateRegistry

from .fixtures.doubles import FakeClock, InMemoryFileSystem, ScriptedLanguageModel


@pytest.fixture
def clock():
    """A clock frozen at 2024-01-15 09:00 that tests advance explicitly."""
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryStateStore()


@pytest.fixture
def memory_fs():
    return InMemoryFileSystem()


@pytest.fixture
def templates():
    return TemplateRegistry()


@pytest.fixture
def prd_template(templates):
    return templates.get("prd")


@pytest.fixture
def scripted_model():
    return ScriptedLanguageModel()


@pytest.fixture
def test_config(tmp_path):
    """Configuration with a fake model, an in-memory state store and a temp workspace."""
    return DocuAssistantConfig(
        llm=LLMConfig(provider=Provider.FAKE, fake_responses=["Noted. What else?"]),
        storage=StorageConfig(state_file=None),
        documents={"workspace_root": str(tmp_path)},
    )


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
