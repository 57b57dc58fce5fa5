"""
Test suite for the pydantic configuration models.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from docu_assistant.config.models import (
    AppConfig,
    AutoChatConfig,
    CommandsConfig,
    DocuAssistantConfig,
    LLMConfig,
    LogLevel,
    Provider,
    StorageConfig,
)


class TestDefaults:

    def test_top_level_defaults(self):
        config = DocuAssistantConfig()

        assert config.app.log_level is LogLevel.INFO
        assert config.llm.model == "llama3.1:8b"
        assert config.llm.fallback_seed is None
        assert config.auto_chat.enabled is True
        assert config.documents.default_template == "basic"
        assert config.recovery.rate_limit_retry_delay_seconds == 30.0

    def test_paths_are_expanded(self):
        home = str(Path("~").expanduser())

        assert AppConfig().data_dir.startswith(home)
        assert StorageConfig().state_file.startswith(home)
        assert StorageConfig(state_file=None).state_file is None

    def test_extra_sections_are_allowed(self):
        config = DocuAssistantConfig(plugins={"enabled": False})
        assert config.plugins == {"enabled": False}


class TestValidation:

    @pytest.mark.parametrize("prefix", ["", " ", "/ "])
    def test_bad_prefix(self, prefix):
        with pytest.raises(ValidationError):
            CommandsConfig(prefix=prefix)

    def test_multi_character_prefix(self):
        assert CommandsConfig(prefix="::").prefix == "::"

    @pytest.mark.parametrize("timeout", [0, -1, 24 * 60 + 1])
    def test_auto_chat_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            AutoChatConfig(timeout_minutes=timeout)

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            LLMConfig(temperature=2.5)

    def test_provider_from_string(self):
        assert LLMConfig(provider="fake").provider is Provider.FAKE

    def test_unknown_provider(self):
        with pytest.raises(ValidationError):
            LLMConfig(provider="carrier-pigeon")

    def test_fake_provider_requires_responses(self):
        with pytest.raises(ValidationError):
            DocuAssistantConfig(llm={"provider": "fake", "fake_responses": []})
