import json
from unittest.mock import MagicMock

from labworker.completion.exceptions import (
    CompletionConfigurationError,
    CompletionNetworkError,
    CompletionTimeoutError,
)
from labworker.extraction.models import Biomarker, ExtractionErrorKind, VerificationStatus
from labworker.extraction.verification_client import UNLISTED_CHANGES_NOTE, VerificationClient

_CANDIDATES = [
    Biomarker(name="Glucose", value=5.2, unit="mmol/L", flag="normal"),
    Biomarker(name="Creatinine", value=80.0, unit="mg/dL"),
]


def _as_json(biomarkers: list[Biomarker]) -> list[dict[str, object]]:
    return [b.to_dict() for b in biomarkers]


def _make_client(response: str | Exception) -> tuple[VerificationClient, MagicMock]:
    completion = MagicMock()
    if isinstance(response, Exception):
        completion.complete.side_effect = response
    else:
        completion.complete.return_value = response
    return VerificationClient(client=completion, max_output_tokens=4096), completion


class TestInstruction:
    def test_embeds_candidates(self) -> None:
        client, _ = _make_client("")
        instruction = client.build_instruction(_CANDIDATES)
        assert '"name": "Creatinine"' in instruction

    def test_uses_verification_schema(self) -> None:
        client, completion = _make_client('{"corrections": []}')
        client.verify(b"%PDF", _CANDIDATES)
        kwargs = completion.complete.call_args.kwargs
        assert kwargs["schema_name"] == "verification_result"
        assert kwargs["max_output_tokens"] == 4096


class TestOutcomes:
    def test_clean_when_unchanged(self) -> None:
        body = {"biomarkers": _as_json(_CANDIDATES), "corrections": []}
        client, _ = _make_client(json.dumps(body))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.CLEAN
        assert result.biomarkers == _CANDIDATES
        assert result.corrections == []

    def test_corrected_with_model_corrections(self) -> None:
        fixed = [_CANDIDATES[0], Biomarker(name="Creatinine", value=80.0, unit="umol/L")]
        body = {
            "biomarkers": _as_json(fixed),
            "corrections": ["Creatinine unit corrected from mg/dL to umol/L"],
        }
        client, _ = _make_client(json.dumps(body))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.CORRECTED
        assert result.biomarkers == fixed
        assert result.corrections == ["Creatinine unit corrected from mg/dL to umol/L"]

    def test_changed_list_without_corrections_gets_note(self) -> None:
        fixed = [_CANDIDATES[0]]
        body = {"biomarkers": _as_json(fixed), "corrections": []}
        client, _ = _make_client(json.dumps(body))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.CORRECTED
        assert result.corrections == [UNLISTED_CHANGES_NOTE]

    def test_missing_biomarkers_keeps_original(self) -> None:
        client, _ = _make_client('{"corrections": []}')
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.CLEAN
        assert result.biomarkers == _CANDIDATES

    def test_empty_list_without_corrections_fails(self) -> None:
        client, _ = _make_client('{"biomarkers": [], "corrections": []}')
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED
        assert result.biomarkers == _CANDIDATES

    def test_fenced_response_is_parsed(self) -> None:
        body = {"biomarkers": _as_json(_CANDIDATES), "corrections": []}
        client, _ = _make_client(f"```json\n{json.dumps(body)}\n```")
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.CLEAN


class TestDegradesToFailed:
    def test_non_json(self) -> None:
        client, _ = _make_client("Everything looks right to me.")
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED
        assert result.error_kind == ExtractionErrorKind.PARSE
        assert result.biomarkers == _CANDIDATES
        assert result.corrections[0].startswith("Verification failed:")

    def test_blank_response(self) -> None:
        client, _ = _make_client("")
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED

    def test_timeout(self) -> None:
        client, _ = _make_client(CompletionTimeoutError("timed out after 600s"))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED
        assert result.error_kind == ExtractionErrorKind.TIMEOUT
        assert "timed out" in result.corrections[0]

    def test_non_2xx(self) -> None:
        client, _ = _make_client(CompletionNetworkError("AI provider API error: 500"))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED
        assert result.error_kind == ExtractionErrorKind.NETWORK

    def test_missing_credentials(self) -> None:
        client, _ = _make_client(CompletionConfigurationError("API key is not configured"))
        result = client.verify(b"%PDF", _CANDIDATES)
        assert result.status == VerificationStatus.FAILED
        assert result.error_kind == ExtractionErrorKind.CONFIGURATION
        assert result.biomarkers == _CANDIDATES
