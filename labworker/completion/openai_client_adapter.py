import base64

import httpx
import openai

from labworker.completion.client_base import BaseCompletionClient
from labworker.completion.exceptions import (
    CompletionConfigurationError,
    CompletionError,
    CompletionNetworkError,
    CompletionTimeoutError,
)
from labworker.completion.models import ProviderConfig
from labworker.logging.logger import Log


class OpenAIClientAdapter(BaseCompletionClient):
    """Completion client built on the OpenAI-compatible chat API.

    The PDF travels inline as a base64 ``file`` content part, and the answer
    is constrained with a strict ``json_schema`` response format.
    """

    DOCUMENT_FILENAME = "lab-report.pdf"

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        self._client: openai.OpenAI | None = None

    def _get_client(self) -> openai.OpenAI:
        if not self._config.api_key:
            raise CompletionConfigurationError(
                f"API key is not configured for provider '{self._config.provider}'"
            )
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self._config.api_key,
                timeout=self._config.timeout_seconds,
                base_url=self._config.base_url,
            )
        return self._client

    def complete(
        self,
        *,
        document_bytes: bytes,
        instruction: str,
        json_schema: dict[str, object],
        max_output_tokens: int,
        schema_name: str = "lab_report",
    ) -> str:
        client = self._get_client()
        encoded = base64.b64encode(document_bytes).decode("ascii")
        Log.debug(
            "Sending completion request",
            provider=self._config.provider,
            model=self._config.model,
            pdf_bytes=len(document_bytes),
        )
        try:
            response = client.chat.completions.create(
                model=self._config.model,
                temperature=self._config.temperature,
                max_completion_tokens=max_output_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "file",
                                "file": {
                                    "filename": self.DOCUMENT_FILENAME,
                                    "file_data": f"data:application/pdf;base64,{encoded}",
                                },
                            },
                            {"type": "text", "text": instruction},
                        ],
                    }
                ],
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise CompletionTimeoutError(
                f"AI provider timed out after {self._config.timeout_seconds}s"
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise CompletionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise CompletionNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise CompletionError("AI returned no choices")
        content = response.choices[0].message.content
        return content or ""
