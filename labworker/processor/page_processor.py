import time
from collections.abc import Callable

from labworker.database.models import ProcessingStage
from labworker.extraction.extraction_client import ExtractionClient
from labworker.extraction.models import (
    ExtractionFailure,
    VerificationResult,
    VerificationStatus,
)
from labworker.extraction.verification_client import UNLISTED_CHANGES_NOTE, VerificationClient
from labworker.logging.logger import Log
from labworker.processor.models import PageDebugTrace, PageResult

StageCallback = Callable[[ProcessingStage], None]

VERIFICATION_SKIPPED_NOTE = "Verification skipped by request"


class PageProcessor:
    """Runs extraction then verification for one unit of work.

    Never raises: a failing page yields an empty or unverified PageResult.
    """

    def __init__(
        self,
        *,
        extraction_client: ExtractionClient,
        verification_client: VerificationClient,
        preview_chars: int = 2000,
    ) -> None:
        self._extraction_client = extraction_client
        self._verification_client = verification_client
        self._preview_chars = preview_chars

    def process(
        self,
        page_number: int,
        pdf_bytes: bytes,
        *,
        skip_verification: bool = False,
        on_stage: StageCallback | None = None,
        label_notes: bool = False,
    ) -> PageResult:
        """Extract then verify one unit of work.

        With label_notes set, notes written by the worker itself (extraction
        failure, verification failure or skip) are prefixed with "[Page N]".
        Corrections reported by the verification model are kept verbatim.
        """
        note = _labeller(page_number, label_notes)
        is_first_page = page_number == 1
        self._notify(on_stage, ProcessingStage.EXTRACTING)

        started = time.perf_counter()
        outcome = self._extraction_client.extract(pdf_bytes, is_first_page=is_first_page)
        extraction_ms = _elapsed_ms(started)

        if isinstance(outcome, ExtractionFailure):
            Log.warning(
                "Page extraction failed",
                page=page_number,
                kind=outcome.kind.value,
                error=outcome.message,
            )
            return PageResult(
                page_number=page_number,
                biomarkers=[],
                verification_status=VerificationStatus.FAILED,
                corrections=[note(f"Extraction failed: {outcome.message}")],
                debug=PageDebugTrace(
                    extraction_ms=extraction_ms,
                    pdf_bytes=len(pdf_bytes),
                    extraction_error=outcome.message,
                    extraction_error_kind=outcome.kind.value,
                    extraction_preview=self._preview(outcome.raw_response),
                ),
            )

        document = outcome.document
        metadata = document.metadata if is_first_page else None
        extracted = document.biomarkers

        if skip_verification:
            return PageResult(
                page_number=page_number,
                biomarkers=list(extracted),
                verification_status=VerificationStatus.FAILED,
                corrections=[note(VERIFICATION_SKIPPED_NOTE)],
                metadata=metadata,
                debug=PageDebugTrace(
                    extraction_ms=extraction_ms,
                    extracted_count=len(extracted),
                    verified_count=len(extracted),
                    pdf_bytes=len(pdf_bytes),
                    verification_skipped=True,
                    extraction_preview=self._preview(outcome.raw_response),
                ),
            )

        if not extracted:
            verification = VerificationResult(biomarkers=[], status=VerificationStatus.CLEAN)
            verification_ms = 0
        else:
            self._notify(on_stage, ProcessingStage.VERIFYING)
            started = time.perf_counter()
            verification = self._verification_client.verify(pdf_bytes, list(extracted))
            verification_ms = _elapsed_ms(started)

        Log.info(
            "Page processed",
            page=page_number,
            extracted=len(extracted),
            verified=len(verification.biomarkers),
            status=verification.status.value,
        )
        return PageResult(
            page_number=page_number,
            biomarkers=list(verification.biomarkers),
            verification_status=verification.status,
            corrections=_own_notes_labelled(verification, note),
            metadata=metadata,
            debug=PageDebugTrace(
                extraction_ms=extraction_ms,
                verification_ms=verification_ms,
                extracted_count=len(extracted),
                verified_count=len(verification.biomarkers),
                pdf_bytes=len(pdf_bytes),
                extraction_preview=self._preview(outcome.raw_response),
                verification_preview=self._preview(verification.raw_response),
            ),
        )

    def _preview(self, raw: str) -> str:
        return (raw or "")[: self._preview_chars]

    @staticmethod
    def _notify(on_stage: StageCallback | None, stage: ProcessingStage) -> None:
        if on_stage is not None:
            on_stage(stage)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _labeller(page_number: int, enabled: bool) -> Callable[[str], str]:
    if not enabled:
        return lambda text: text
    return lambda text: f"[Page {page_number}] {text}"


def _own_notes_labelled(
    verification: VerificationResult, note: Callable[[str], str]
) -> list[str]:
    if verification.status == VerificationStatus.FAILED:
        return [note(correction) for correction in verification.corrections]
    return [
        note(correction) if correction == UNLISTED_CHANGES_NOTE else correction
        for correction in verification.corrections
    ]
