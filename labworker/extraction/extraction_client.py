"""First-pass extraction of biomarkers from a lab report PDF."""

from pathlib import Path

from labworker.completion.client_base import BaseCompletionClient
from labworker.completion.exceptions import (
    CompletionConfigurationError,
    CompletionError,
    CompletionNetworkError,
    CompletionTimeoutError,
)
from labworker.extraction.exceptions import ResponseParseError
from labworker.extraction.models import (
    DocumentMetadata,
    ExtractedDocument,
    ExtractionErrorKind,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
)
from labworker.extraction.parsing import build_biomarkers, build_metadata, parse_json_object
from labworker.extraction.prompt_loader import load_json_schema, load_prompt
from labworker.logging.logger import Log


class ExtractionClient:
    """Asks the extraction model for biomarkers and parses its answer.

    Every failure is returned as an ExtractionFailure; nothing raises.
    """

    SCHEMA_NAME = "lab_report"

    def __init__(
        self,
        *,
        client: BaseCompletionClient,
        max_output_tokens: int,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._max_output_tokens = max_output_tokens
        self._prompt_template = load_prompt("extraction_prompt.txt", prompt_dir)
        self._metadata_instructions = load_prompt("extraction_metadata.txt", prompt_dir)
        self._no_metadata_instructions = load_prompt("extraction_no_metadata.txt", prompt_dir)
        self._json_schema = load_json_schema("extraction_schema.json", prompt_dir)

    def build_instruction(self, *, is_first_page: bool) -> str:
        instructions = (
            self._metadata_instructions if is_first_page else self._no_metadata_instructions
        )
        return self._prompt_template.format(metadata_instructions=instructions.strip())

    def extract(self, document_bytes: bytes, *, is_first_page: bool) -> ExtractionOutcome:
        instruction = self.build_instruction(is_first_page=is_first_page)
        Log.debug(f"Extraction prompt:\n{instruction}")

        try:
            raw_response = self._client.complete(
                document_bytes=document_bytes,
                instruction=instruction,
                json_schema=self._json_schema,
                max_output_tokens=self._max_output_tokens,
                schema_name=self.SCHEMA_NAME,
            )
        except CompletionConfigurationError as exc:
            return self._failure(ExtractionErrorKind.CONFIGURATION, str(exc))
        except CompletionTimeoutError as exc:
            return self._failure(ExtractionErrorKind.TIMEOUT, str(exc))
        except CompletionNetworkError as exc:
            return self._failure(ExtractionErrorKind.NETWORK, str(exc))
        except CompletionError as exc:
            return self._failure(ExtractionErrorKind.PARSE, str(exc))

        Log.debug(f"Extraction raw response:\n{raw_response}")
        try:
            parsed = parse_json_object(raw_response)
        except ResponseParseError as exc:
            return self._failure(ExtractionErrorKind.PARSE, str(exc), raw_response)

        if parsed is None:
            Log.info("Extraction returned an empty response; treating as no biomarkers")
            return ExtractionSuccess(document=ExtractedDocument(), raw_response=raw_response)

        raw_biomarkers = parsed.get("biomarkers", [])
        if not isinstance(raw_biomarkers, list):
            return self._failure(
                ExtractionErrorKind.PARSE, "'biomarkers' must be a list", raw_response
            )
        biomarkers, notes = build_biomarkers(raw_biomarkers)
        for note in notes:
            Log.warning(note)

        metadata = build_metadata(parsed.get("metadata")) if is_first_page else DocumentMetadata()
        Log.info(
            "Extraction complete",
            biomarkers=len(biomarkers),
            dropped=len(notes),
            is_first_page=is_first_page,
        )
        return ExtractionSuccess(
            document=ExtractedDocument(metadata=metadata, biomarkers=biomarkers),
            raw_response=raw_response,
        )

    @staticmethod
    def _failure(
        kind: ExtractionErrorKind, message: str, raw_response: str = ""
    ) -> ExtractionFailure:
        Log.warning("Extraction failed", kind=kind.value, error=message)
        return ExtractionFailure(kind=kind, message=message, raw_response=raw_response)
