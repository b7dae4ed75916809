from dataclasses import asdict, dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Biomarker:
    """A single lab measurement as read from the report."""

    name: str
    value: float
    unit: str = ""
    secondary_value: float | None = None
    secondary_unit: str | None = None
    reference_min: float | None = None
    reference_max: float | None = None
    flag: str | None = None

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class DocumentMetadata:
    """Report-level details, read from the first unit of work only."""

    patient_name: str | None = None
    patient_gender: str | None = None
    patient_birth_date: str | None = None
    lab_name: str | None = None
    ordering_clinician: str | None = None
    test_date: str | None = None

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class ExtractedDocument:
    """Output of the extraction step."""

    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    biomarkers: list[Biomarker] = field(default_factory=list)


class ExtractionErrorKind(str, Enum):
    PARSE = "parse"
    TIMEOUT = "timeout"
    NETWORK = "network"
    CONFIGURATION = "configuration"

    @property
    def is_unavailable(self) -> bool:
        """True when the model could not be reached at all."""
        return self is not ExtractionErrorKind.PARSE


@dataclass(frozen=True)
class ExtractionSuccess:
    document: ExtractedDocument
    raw_response: str = ""


@dataclass(frozen=True)
class ExtractionFailure:
    kind: ExtractionErrorKind
    message: str
    raw_response: str = ""


ExtractionOutcome = ExtractionSuccess | ExtractionFailure


class VerificationStatus(str, Enum):
    """Outcome of verification, ordered from best to worst."""

    CLEAN = "clean"
    CORRECTED = "corrected"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst(cls, statuses: list["VerificationStatus"]) -> "VerificationStatus":
        """Return the most severe status, or clean for an empty list."""
        if not statuses:
            return cls.CLEAN
        return max(statuses, key=lambda status: status.severity)


_SEVERITY = {
    VerificationStatus.CLEAN: 0,
    VerificationStatus.CORRECTED: 1,
    VerificationStatus.FAILED: 2,
}


@dataclass(frozen=True)
class VerificationResult:
    """Output of the verification step."""

    biomarkers: list[Biomarker]
    status: VerificationStatus
    corrections: list[str] = field(default_factory=list)
    error_kind: ExtractionErrorKind | None = None
    raw_response: str = ""
