from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderConfig:
    """Everything a completion adapter needs for one model role."""

    provider: str
    model: str
    api_key: str = ""
    base_url: str | None = None
    timeout_seconds: int = 600
    temperature: float = 0.0
    max_output_tokens: int = 32000
