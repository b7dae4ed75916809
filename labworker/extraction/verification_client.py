"""Independent cross-check of extracted biomarkers against the source PDF."""

import json
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
    Biomarker,
    ExtractionErrorKind,
    VerificationResult,
    VerificationStatus,
)
from labworker.extraction.parsing import build_biomarkers, parse_json_object
from labworker.extraction.prompt_loader import load_json_schema, load_prompt
from labworker.logging.logger import Log

UNLISTED_CHANGES_NOTE = "Verification changed biomarker data without listing corrections"


class VerificationClient:
    """Asks the verification model to check candidates and collects its corrections.

    Never raises: any failure keeps the candidate list and reports status failed.
    """

    SCHEMA_NAME = "verification_result"

    def __init__(
        self,
        *,
        client: BaseCompletionClient,
        max_output_tokens: int,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._max_output_tokens = max_output_tokens
        self._prompt_template = load_prompt("verification_prompt.txt", prompt_dir)
        self._json_schema = load_json_schema("verification_schema.json", prompt_dir)

    def build_instruction(self, biomarkers: list[Biomarker]) -> str:
        candidates = json.dumps([b.to_dict() for b in biomarkers], indent=2, ensure_ascii=False)
        return self._prompt_template.format(candidates_json=candidates)

    def verify(self, document_bytes: bytes, biomarkers: list[Biomarker]) -> VerificationResult:
        instruction = self.build_instruction(biomarkers)
        Log.debug(f"Verification prompt:\n{instruction}")

        try:
            raw_response = self._client.complete(
                document_bytes=document_bytes,
                instruction=instruction,
                json_schema=self._json_schema,
                max_output_tokens=self._max_output_tokens,
                schema_name=self.SCHEMA_NAME,
            )
        except CompletionConfigurationError as exc:
            return self._failed(biomarkers, ExtractionErrorKind.CONFIGURATION, str(exc))
        except CompletionTimeoutError as exc:
            return self._failed(biomarkers, ExtractionErrorKind.TIMEOUT, str(exc))
        except CompletionNetworkError as exc:
            return self._failed(biomarkers, ExtractionErrorKind.NETWORK, str(exc))
        except CompletionError as exc:
            return self._failed(biomarkers, ExtractionErrorKind.PARSE, str(exc))

        Log.debug(f"Verification raw response:\n{raw_response}")
        try:
            parsed = parse_json_object(raw_response)
        except ResponseParseError as exc:
            return self._failed(biomarkers, ExtractionErrorKind.PARSE, str(exc), raw_response)
        if parsed is None:
            return self._failed(
                biomarkers, ExtractionErrorKind.PARSE, "empty response", raw_response
            )

        corrections = _build_corrections(parsed.get("corrections"))

        if "biomarkers" not in parsed:
            verified = list(biomarkers)
        else:
            verified, notes = build_biomarkers(parsed["biomarkers"])
            for note in notes:
                Log.warning(note)

        if not verified and biomarkers and not corrections:
            return self._failed(
                biomarkers,
                ExtractionErrorKind.PARSE,
                "model returned no biomarkers and no corrections",
                raw_response,
            )

        if corrections:
            status = VerificationStatus.CORRECTED
        elif verified != biomarkers:
            status = VerificationStatus.CORRECTED
            corrections = [UNLISTED_CHANGES_NOTE]
        else:
            status = VerificationStatus.CLEAN

        Log.info(
            "Verification complete",
            status=status.value,
            biomarkers=len(verified),
            corrections=len(corrections),
        )
        return VerificationResult(
            biomarkers=verified,
            status=status,
            corrections=corrections,
            raw_response=raw_response,
        )

    @staticmethod
    def _failed(
        biomarkers: list[Biomarker],
        kind: ExtractionErrorKind,
        reason: str,
        raw_response: str = "",
    ) -> VerificationResult:
        Log.warning("Verification failed, keeping extracted data", kind=kind.value, error=reason)
        return VerificationResult(
            biomarkers=list(biomarkers),
            status=VerificationStatus.FAILED,
            corrections=[f"Verification failed: {reason}"],
            error_kind=kind,
            raw_response=raw_response,
        )


def _build_corrections(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(item).strip() for item in raw if item is not None and str(item).strip()]
