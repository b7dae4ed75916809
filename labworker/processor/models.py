from dataclasses import asdict, dataclass, field

from labworker.database.models import JobStatus
from labworker.extraction.models import Biomarker, DocumentMetadata, VerificationStatus


@dataclass(frozen=True)
class PageDebugTrace:
    """Diagnostics for one unit of work, persisted under extracted_data.debug."""

    extraction_ms: int = 0
    verification_ms: int = 0
    extracted_count: int = 0
    verified_count: int = 0
    pdf_bytes: int = 0
    extraction_error: str | None = None
    extraction_error_kind: str | None = None
    verification_skipped: bool = False
    extraction_preview: str = ""
    verification_preview: str = ""

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class PageResult:
    """Verified output for one page, or for the whole document in single-shot mode."""

    page_number: int
    biomarkers: list[Biomarker]
    verification_status: VerificationStatus
    corrections: list[str] = field(default_factory=list)
    metadata: DocumentMetadata | None = None
    debug: PageDebugTrace = field(default_factory=PageDebugTrace)


@dataclass(frozen=True)
class ProcessingResult:
    """Final outcome of processing one upload, as persisted on the job row."""

    success: bool
    status: JobStatus
    extracted_data: dict[str, object] = field(default_factory=dict)
    extraction_confidence: float | None = None
    verification_status: VerificationStatus | None = None
    corrections: list[str] = field(default_factory=list)
    matched_count: int = 0
    unmatched_count: int = 0
