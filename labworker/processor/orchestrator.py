import time
from dataclasses import asdict
from pathlib import Path
from typing import assert_never

from labworker.completion.factory import CompletionClientFactory
from labworker.config.settings import Settings
from labworker.database.models import JobStatus, ProcessingStage, UploadJob
from labworker.database.repositories.lab_upload_repository import NOW, LabUploadRepository
from labworker.database.repositories.standards_repository import StandardsRepository
from labworker.extraction.extraction_client import ExtractionClient
from labworker.extraction.models import ExtractionErrorKind, VerificationStatus
from labworker.extraction.verification_client import VerificationClient
from labworker.logging.logger import Log
from labworker.pdf.base import BasePdfSplitter
from labworker.pdf.factory import PdfSplitterFactory
from labworker.processor.exceptions import ExtractionUnavailableError
from labworker.processor.file_loader import FileLoader
from labworker.processor.merger import (
    BiomarkerMerger,
    ConflictPolicy,
    MergeResult,
    single_page_result,
)
from labworker.processor.models import PageResult, ProcessingResult
from labworker.processor.page_processor import PageProcessor
from labworker.processor.planner import ExecutionPlan, ExecutionStrategy, PagePlanner
from labworker.standardization.models import StandardizationResult
from labworker.standardization.standardizer import Standardizer, resolve_gender

CONFIDENCE_VERIFIED = 0.95
CONFIDENCE_UNVERIFIED = 0.8
CONFIDENCE_VERIFICATION_FAILED = 0.7


class Orchestrator:
    """Drives one upload from pending to a terminal status.

    Pipeline: fetch -> count pages -> plan -> extract/verify (single-shot or
    per page) -> merge -> standardize -> persist result.
    """

    def __init__(
        self,
        *,
        upload_repo: LabUploadRepository,
        standards_repo: StandardsRepository,
        file_loader: FileLoader,
        pdf_splitter: BasePdfSplitter,
        planner: PagePlanner,
        page_processor: PageProcessor,
        merger: BiomarkerMerger,
        default_gender: str = "male",
        match_threshold: float = 90.0,
    ) -> None:
        self._upload_repo = upload_repo
        self._standards_repo = standards_repo
        self._file_loader = file_loader
        self._pdf_splitter = pdf_splitter
        self._planner = planner
        self._page_processor = page_processor
        self._merger = merger
        self._default_gender = default_gender
        self._match_threshold = match_threshold

    def process(self, job_id: int) -> ProcessingResult:
        """Process one pending upload and persist its result.

        Raises:
            DocumentNotFoundError: if the upload does not exist.
            JobAlreadyProcessingError: if another trigger is already running it.
            JobNotPendingError: if the upload is terminal and was not reset.
            Any unrecoverable pipeline error, after the upload is marked failed.
        """
        job = self._upload_repo.begin_processing(job_id)
        Log.info("Processing upload", upload_id=job.id, filename=job.filename)
        started = time.perf_counter()

        try:
            document_bytes = self._file_loader.load(job)
            Log.info("Loaded document", upload_id=job.id, bytes=len(document_bytes))

            page_count = self._pdf_splitter.page_count(document_bytes)
            self._upload_repo.update_status(job.id, page_count=page_count)
            plan = self._planner.plan(page_count)
            Log.info(
                "Planned execution",
                upload_id=job.id,
                pages=page_count,
                strategy=plan.strategy.value,
            )

            match plan.strategy:
                case ExecutionStrategy.SINGLE_SHOT:
                    page_results = [self._run_single_shot(job, document_bytes)]
                case ExecutionStrategy.CHUNKED:
                    page_results = self._run_chunked(job, document_bytes, plan)
                case _:
                    assert_never(plan.strategy)

            self._ensure_extraction_reached(plan, page_results)

            if plan.strategy == ExecutionStrategy.CHUNKED:
                merge = self._merger.merge(page_results)
            else:
                merge = single_page_result(page_results[0])

            self._enter_stage(job.id, ProcessingStage.STANDARDIZING)
            corrections = [*merge.corrections, *merge.warnings]
            standardization = self._standardize(job, merge, corrections)

            result = self._build_result(
                job, plan, merge, standardization, corrections, page_results,
                pdf_bytes=len(document_bytes),
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            self._upload_repo.update_status(
                job.id,
                status=result.status,
                processing_stage=None,
                extracted_data=result.extracted_data,
                extraction_confidence=result.extraction_confidence,
                verification_status=result.verification_status,
                corrections=result.corrections,
                matched_count=result.matched_count,
                unmatched_count=result.unmatched_count,
                completed_at=NOW,
            )
        except Exception as exc:
            Log.exception("Upload processing failed", upload_id=job.id, error=exc)
            self._upload_repo.mark_failed(job.id, str(exc) or type(exc).__name__)
            raise

        Log.info(
            "Upload processed",
            upload_id=job.id,
            status=result.status.value,
            matched=result.matched_count,
            unmatched=result.unmatched_count,
        )
        return result

    def reset(self, job_id: int) -> None:
        """Return a terminal upload to pending so it can be processed again."""
        self._upload_repo.reset(job_id)
        Log.info("Upload reset to pending", upload_id=job_id)

    def _enter_stage(self, job_id: int, stage: ProcessingStage) -> None:
        self._upload_repo.update_status(job_id, processing_stage=stage)
        Log.info(_describe_stage(stage), upload_id=job_id, stage=stage.value)

    def _run_single_shot(self, job: UploadJob, document_bytes: bytes) -> PageResult:
        return self._page_processor.process(
            1,
            document_bytes,
            skip_verification=job.skip_verification,
            on_stage=lambda stage: self._enter_stage(job.id, stage),
        )

    def _run_chunked(
        self, job: UploadJob, document_bytes: bytes, plan: ExecutionPlan
    ) -> list[PageResult]:
        self._enter_stage(job.id, ProcessingStage.SPLITTING_PAGES)
        chunks = self._pdf_splitter.split_pages(document_bytes)
        if len(chunks) != plan.page_count:
            Log.warning(
                "Split page count differs from counted pages",
                upload_id=job.id,
                counted=plan.page_count,
                split=len(chunks),
            )
        total_pages = len(chunks)

        results: list[PageResult] = []
        for chunk in chunks:
            self._upload_repo.update_status(
                job.id, current_page=chunk.page_number, total_pages=total_pages
            )
            Log.info(
                "Processing page",
                upload_id=job.id,
                page=chunk.page_number,
                total=total_pages,
                bytes=chunk.byte_size,
            )
            results.append(
                self._page_processor.process(
                    chunk.page_number,
                    chunk.pdf_bytes,
                    skip_verification=job.skip_verification,
                    on_stage=lambda stage: self._enter_stage(job.id, stage),
                    label_notes=True,
                )
            )
        return results

    @staticmethod
    def _ensure_extraction_reached(plan: ExecutionPlan, page_results: list[PageResult]) -> None:
        """Raise when the extraction model could not be reached for any unit of work."""
        unreachable = [
            result
            for result in page_results
            if result.debug.extraction_error_kind is not None
            and ExtractionErrorKind(result.debug.extraction_error_kind).is_unavailable
        ]
        if page_results and len(unreachable) == len(page_results):
            reason = unreachable[0].debug.extraction_error or "unknown error"
            if plan.strategy == ExecutionStrategy.CHUNKED:
                raise ExtractionUnavailableError(
                    f"Extraction model unavailable for all {len(page_results)} pages: {reason}"
                )
            raise ExtractionUnavailableError(f"Extraction model unavailable: {reason}")

    def _standardize(
        self, job: UploadJob, merge: MergeResult, corrections: list[str]
    ) -> StandardizationResult | None:
        """Run standardization; failures are recorded in corrections, never raised."""
        biomarkers = merge.document.biomarkers
        try:
            standards = self._standards_repo.list_standards()
            gender = resolve_gender(
                self._upload_repo.get_profile_gender(job.user_id),
                merge.document.metadata.patient_gender,
                self._default_gender,
            )
            standardizer = Standardizer(standards, match_threshold=self._match_threshold)
            result = standardizer.standardize(biomarkers, gender)
        except Exception as exc:
            Log.exception("Standardization failed", upload_id=job.id, error=exc)
            corrections.append(f"Post-processing failed: {exc} - biomarkers not standardized")
            return None

        if result.unmatched_count > 0:
            corrections.append(
                f"{result.unmatched_count} biomarker(s) could not be matched to standards "
                "- review required"
            )
        if not result.processed:
            corrections.append("No biomarkers were available to standardize")
        return result

    def _build_result(
        self,
        job: UploadJob,
        plan: ExecutionPlan,
        merge: MergeResult,
        standardization: StandardizationResult | None,
        corrections: list[str],
        page_results: list[PageResult],
        *,
        pdf_bytes: int,
        duration_ms: int,
    ) -> ProcessingResult:
        processed = standardization.processed if standardization else []
        status = JobStatus.COMPLETE if processed else JobStatus.PARTIAL

        extracted_data: dict[str, object] = {
            **merge.document.metadata.to_dict(),
            "biomarkers": [b.to_dict() for b in merge.document.biomarkers],
            "processed_biomarkers": [p.to_dict() for p in processed],
            "debug": {
                "mode": plan.strategy.value,
                "page_count": plan.page_count,
                "pdf_bytes": pdf_bytes,
                "duration_ms": duration_ms,
                "duplicates_removed": merge.duplicates_removed,
                "conflicts": [asdict(conflict) for conflict in merge.conflicts],
                "source_pages": merge.source_pages,
                "pages": [
                    {"page_number": result.page_number, **result.debug.to_dict()}
                    for result in page_results
                ],
                "standardization": standardization.summary() if standardization else None,
            },
        }

        return ProcessingResult(
            success=True,
            status=status,
            extracted_data=extracted_data,
            extraction_confidence=_confidence(job, merge.verification_status),
            verification_status=merge.verification_status,
            corrections=corrections,
            matched_count=standardization.matched_count if standardization else 0,
            unmatched_count=standardization.unmatched_count if standardization else 0,
        )


def _confidence(job: UploadJob, status: VerificationStatus) -> float:
    if job.skip_verification:
        return CONFIDENCE_UNVERIFIED
    if status == VerificationStatus.FAILED:
        return CONFIDENCE_VERIFICATION_FAILED
    return CONFIDENCE_VERIFIED


def _describe_stage(stage: ProcessingStage) -> str:
    match stage:
        case ProcessingStage.FETCHING_DOCUMENT:
            return "Fetching document"
        case ProcessingStage.SPLITTING_PAGES:
            return "Splitting document into pages"
        case ProcessingStage.EXTRACTING:
            return "Extracting biomarkers"
        case ProcessingStage.VERIFYING:
            return "Verifying biomarkers"
        case ProcessingStage.STANDARDIZING:
            return "Standardizing biomarkers"
        case _:
            assert_never(stage)


def build_orchestrator(settings: Settings, files_root: Path | None = None) -> Orchestrator:
    """Build an Orchestrator with all required adapters."""
    extraction_config = CompletionClientFactory.provider_config(settings, "extraction")
    verification_config = CompletionClientFactory.provider_config(settings, "verification")
    page_processor = PageProcessor(
        extraction_client=ExtractionClient(
            client=CompletionClientFactory.create(extraction_config),
            max_output_tokens=extraction_config.max_output_tokens,
        ),
        verification_client=VerificationClient(
            client=CompletionClientFactory.create(verification_config),
            max_output_tokens=verification_config.max_output_tokens,
        ),
        preview_chars=settings.debug_preview_chars,
    )
    return Orchestrator(
        upload_repo=LabUploadRepository(),
        standards_repo=StandardsRepository(),
        file_loader=FileLoader(
            files_root=files_root if files_root is not None else Path(settings.files_root),
            base_url=settings.storage_base_url,
            timeout_seconds=settings.storage_timeout_seconds,
        ),
        pdf_splitter=PdfSplitterFactory.create(settings),
        planner=PagePlanner(settings.page_chunk_threshold),
        page_processor=page_processor,
        merger=BiomarkerMerger(
            value_tolerance=settings.merge_value_tolerance,
            conflict_policy=ConflictPolicy(settings.merge_conflict_policy.lower()),
        ),
        default_gender=settings.default_gender,
        match_threshold=settings.standardization_match_threshold,
    )
