"""Tests for CompletionClientFactory."""

import pytest

from labworker.completion.example_client_adapter import ExampleClientAdapter
from labworker.completion.factory import CompletionClientFactory
from labworker.completion.models import ProviderConfig
from labworker.completion.openai_client_adapter import OpenAIClientAdapter
from labworker.config.settings import Settings


class TestProviderConfig:
    def test_builds_extraction_config(self) -> None:
        settings = Settings(
            extraction_provider="openai",
            extraction_api_key="openai-key",
            extraction_model_name="gpt-4.1",
            extraction_timeout_seconds=42,
            extraction_max_output_tokens=1234,
        )
        config = CompletionClientFactory.provider_config(settings, "extraction")
        assert config == ProviderConfig(
            provider="openai",
            model="gpt-4.1",
            api_key="openai-key",
            base_url=None,
            timeout_seconds=42,
            temperature=settings.extraction_temperature,
            max_output_tokens=1234,
        )

    def test_roles_are_independent(self) -> None:
        settings = Settings(
            extraction_provider="openai",
            extraction_api_key="a",
            verification_provider="groq",
            verification_api_key="b",
            verification_model_name="llama",
        )
        config = CompletionClientFactory.provider_config(settings, "verification")
        assert config.provider == "groq"
        assert config.api_key == "b"
        assert config.model == "llama"

    def test_uses_provider_default_base_url_for_openrouter(self) -> None:
        settings = Settings(extraction_provider="openrouter", extraction_api_key="k")
        config = CompletionClientFactory.provider_config(settings, "extraction")
        assert config.base_url == "https://openrouter.ai/api/v1"

    def test_configured_base_url_overrides_default(self) -> None:
        settings = Settings(
            extraction_provider="ollama",
            extraction_base_url="http://gpu-box:11434/v1",
        )
        config = CompletionClientFactory.provider_config(settings, "extraction")
        assert config.base_url == "http://gpu-box:11434/v1"

    def test_ollama_needs_no_api_key(self) -> None:
        settings = Settings(extraction_provider="ollama", extraction_api_key="")
        config = CompletionClientFactory.provider_config(settings, "extraction")
        assert config.api_key == "ollama"

    def test_openai_compatible_requires_base_url(self) -> None:
        settings = Settings(extraction_provider="openai_compatible", extraction_base_url="")
        with pytest.raises(ValueError, match="extraction_base_url is required"):
            CompletionClientFactory.provider_config(settings, "extraction")

    def test_is_case_insensitive(self) -> None:
        settings = Settings(verification_provider="DeepSeek", verification_api_key="k")
        config = CompletionClientFactory.provider_config(settings, "verification")
        assert config.provider == "deepseek"
        assert config.base_url == "https://api.deepseek.com/v1"

    def test_raises_for_unknown_provider(self) -> None:
        settings = Settings(extraction_provider="unknown")
        with pytest.raises(ValueError, match="Unknown extraction provider"):
            CompletionClientFactory.provider_config(settings, "extraction")

    def test_raises_for_unknown_role(self) -> None:
        with pytest.raises(ValueError, match="Unknown model role"):
            CompletionClientFactory.provider_config(Settings(), "summarization")


class TestCreate:
    def test_creates_example_adapter(self) -> None:
        client = CompletionClientFactory.create(ProviderConfig(provider="example", model="x"))
        assert isinstance(client, ExampleClientAdapter)

    def test_creates_openai_adapter(self) -> None:
        client = CompletionClientFactory.create(
            ProviderConfig(provider="groq", model="m", api_key="k")
        )
        assert isinstance(client, OpenAIClientAdapter)
