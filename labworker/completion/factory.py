from typing import ClassVar

from labworker.completion.client_base import BaseCompletionClient
from labworker.completion.example_client_adapter import ExampleClientAdapter
from labworker.completion.models import ProviderConfig
from labworker.completion.openai_client_adapter import OpenAIClientAdapter
from labworker.config.settings import Settings


class CompletionClientFactory:
    """Builds provider configs from settings and creates completion clients."""

    ROLES: ClassVar[tuple[str, ...]] = ("extraction", "verification")

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    # Local servers accept any bearer token.
    KEYLESS_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama"})

    @classmethod
    def provider_config(cls, settings: Settings, role: str) -> ProviderConfig:
        """Build the provider config for one model role from application settings."""
        if role not in cls.ROLES:
            raise ValueError(f"Unknown model role '{role}'. Choose from: {list(cls.ROLES)}")
        provider = str(getattr(settings, f"{role}_provider")).lower()
        api_key = str(getattr(settings, f"{role}_api_key") or "")
        if not api_key and provider in cls.KEYLESS_PROVIDERS:
            api_key = provider
        return ProviderConfig(
            provider=provider,
            model=str(getattr(settings, f"{role}_model_name")),
            api_key=api_key,
            base_url=cls._resolve_base_url(
                provider, str(getattr(settings, f"{role}_base_url") or ""), role
            ),
            timeout_seconds=int(getattr(settings, f"{role}_timeout_seconds")),
            temperature=float(getattr(settings, f"{role}_temperature")),
            max_output_tokens=int(getattr(settings, f"{role}_max_output_tokens")),
        )

    @classmethod
    def create(cls, config: ProviderConfig) -> BaseCompletionClient:
        """Create a completion client for a resolved provider config."""
        if config.provider == "example":
            return ExampleClientAdapter()
        return OpenAIClientAdapter(config)

    @classmethod
    def _resolve_base_url(cls, provider: str, configured: str, role: str) -> str | None:
        configured = configured.strip()
        if provider == "example":
            return None
        if provider == "openai":
            return configured or None
        if provider == "openai_compatible":
            if not configured:
                raise ValueError(
                    f"{role}_base_url is required for {role}_provider=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown {role} provider '{provider}'. Choose from: {supported}")
