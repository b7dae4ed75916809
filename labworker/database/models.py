from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle of a lab upload. complete, partial and failed are terminal."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class ProcessingStage(str, Enum):
    """Sub-stages of the processing status, recorded for progress polling."""

    FETCHING_DOCUMENT = "fetching_document"
    SPLITTING_PAGES = "splitting_pages"
    EXTRACTING = "extracting"
    VERIFYING = "verifying"
    STANDARDIZING = "standardizing"


@dataclass(frozen=True)
class UploadJob:
    """Represents a row from the lab_uploads table (status and progress columns)."""

    id: int
    user_id: int
    filename: str
    storage_path: str
    storage_disk: str
    file_size: int
    skip_verification: bool
    status: JobStatus
    processing_stage: ProcessingStage | None = None
    page_count: int | None = None
    current_page: int | None = None
    total_pages: int | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ReferenceRangeRecord:
    low: float
    high: float


@dataclass(frozen=True)
class BiomarkerStandard:
    """Represents a row from the biomarker_standards table (read-only catalog)."""

    code: str
    name: str
    standard_unit: str
    aliases: tuple[str, ...] = ()
    unit_conversions: dict[str, float] | None = None
    reference_ranges: dict[str, ReferenceRangeRecord] | None = None
    decimal_places: int = 1

    def reference_range(self, gender: str) -> ReferenceRangeRecord | None:
        if not self.reference_ranges:
            return None
        return self.reference_ranges.get(gender)
