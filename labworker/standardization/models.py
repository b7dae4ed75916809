from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class ProcessedBiomarker:
    """A biomarker reconciled against the standards catalog.

    Unmatched biomarkers keep their original fields and have every standard_*
    field set to None.
    """

    original_name: str
    original_value: float | None
    original_unit: str
    matched: bool = False
    standard_code: str | None = None
    standard_name: str | None = None
    standard_value: float | None = None
    standard_unit: str | None = None
    reference_min: float | None = None
    reference_max: float | None = None
    flag: str | None = None
    validation_issues: list[str] = field(default_factory=list)
    conversion_factor: float | None = None
    match_score: float | None = None
    calculated: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class StandardizationResult:
    processed: list[ProcessedBiomarker]
    gender: str
    standards_count: int = 0

    @property
    def matched_count(self) -> int:
        return sum(1 for item in self.processed if item.matched)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for item in self.processed if not item.matched)

    def summary(self) -> dict[str, object]:
        return {
            "gender": self.gender,
            "standards_count": self.standards_count,
            "processed_count": len(self.processed),
            "matched_count": self.matched_count,
            "unmatched_count": self.unmatched_count,
        }
