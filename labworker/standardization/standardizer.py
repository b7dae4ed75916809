"""Maps extracted biomarkers onto the standards catalog.

For each biomarker: match the name, convert the value into the standard unit,
round it to the standard's precision and flag it against the reference range
for the resolved gender. Unmatched biomarkers are kept as-is.
"""

import math
import re

from labworker.database.models import BiomarkerStandard
from labworker.extraction.models import Biomarker
from labworker.logging.logger import Log
from labworker.standardization.matcher import BiomarkerMatcher, NameNormalizer
from labworker.standardization.models import ProcessedBiomarker, StandardizationResult
from labworker.standardization.units import conversion_factor, round_half_up

_GENDERS = frozenset({"male", "female"})
_IMPLAUSIBLE_MULTIPLIER = 100

TOTAL_VITAMIN_D_CODE = "vitamin_d"
VITAMIN_D_PARTS = ("vitamin_d2", "vitamin_d3")
TOTAL_VITAMIN_D_NAME = "Total 25-OH Vitamin D (calculated)"
_TOTAL_VITAMIN_D_RE = re.compile(r"\btotal\b.*\bvitamin d\b|\bvitamin d\b.*\btotal\b")


def resolve_gender(
    profile_gender: str | None,
    extracted_gender: str | None,
    default_gender: str = "male",
) -> str:
    """Pick the reference-range table: profile, then document, then default."""
    for candidate in (profile_gender, extracted_gender):
        if candidate and candidate.strip().lower() in _GENDERS:
            return candidate.strip().lower()
    default = (default_gender or "").strip().lower()
    return default if default in _GENDERS else "male"


def compute_flag(value: float | None, low: float | None, high: float | None) -> str | None:
    if value is None or low is None or high is None:
        return None
    if value < low:
        return "low"
    if value > high:
        return "high"
    return "normal"


class Standardizer:
    """Standardizes a biomarker list against a fixed set of catalog entries."""

    def __init__(
        self,
        standards: list[BiomarkerStandard],
        *,
        match_threshold: float = 90.0,
        normalizer: NameNormalizer | None = None,
    ) -> None:
        self._standards = standards
        self._by_code = {standard.code: standard for standard in standards}
        self._normalizer = normalizer or NameNormalizer()
        self._matcher = BiomarkerMatcher(
            standards, threshold=match_threshold, normalizer=self._normalizer
        )

    def standardize(self, biomarkers: list[Biomarker], gender: str) -> StandardizationResult:
        processed = [self._standardize_one(biomarker, gender) for biomarker in biomarkers]

        total = self._synthesize_vitamin_d_total(processed, gender)
        if total is not None:
            processed.append(total)

        result = StandardizationResult(
            processed=processed,
            gender=gender,
            standards_count=len(self._standards),
        )
        Log.info(
            "Standardization complete",
            processed=len(processed),
            matched=result.matched_count,
            unmatched=result.unmatched_count,
            gender=gender,
        )
        return result

    def _standardize_one(self, biomarker: Biomarker, gender: str) -> ProcessedBiomarker:
        if not math.isfinite(biomarker.value):
            Log.warning("Skipping non-finite biomarker value", name=biomarker.name)
            return ProcessedBiomarker(
                original_name=biomarker.name,
                original_value=None,
                original_unit=biomarker.unit,
                validation_issues=[f"Non-finite value {biomarker.value}"],
            )

        issues: list[str] = []
        if biomarker.value < 0:
            issues.append(f"Negative value {biomarker.value}")

        match = self._matcher.match(biomarker.name)
        if match.issue:
            issues.append(match.issue)
        standard = match.standard
        if standard is None:
            Log.debug("No standard matched", name=biomarker.name)
            return ProcessedBiomarker(
                original_name=biomarker.name,
                original_value=biomarker.value,
                original_unit=biomarker.unit,
                validation_issues=issues,
            )

        source_value, factor = biomarker.value, conversion_factor(standard, biomarker.unit)
        if (
            factor is None
            and biomarker.secondary_value is not None
            and math.isfinite(biomarker.secondary_value)
        ):
            secondary_factor = conversion_factor(standard, biomarker.secondary_unit)
            if secondary_factor is not None:
                source_value, factor = biomarker.secondary_value, secondary_factor

        standard_value: float | None = None
        if factor is None:
            issues.append(
                f"No conversion from '{biomarker.unit}' to '{standard.standard_unit}'"
            )
        elif not math.isfinite(source_value * factor):
            issues.append(
                f"Converted value of {source_value} {biomarker.unit} is out of range"
            )
        else:
            standard_value = round_half_up(source_value * factor, standard.decimal_places)

        reference = standard.reference_range(gender)
        low = reference.low if reference else None
        high = reference.high if reference else None
        if standard_value is not None and high is not None and high > 0:
            if standard_value > high * _IMPLAUSIBLE_MULTIPLIER:
                issues.append(
                    f"Value {standard_value} {standard.standard_unit} is more than "
                    f"{_IMPLAUSIBLE_MULTIPLIER}x the upper reference limit {high}"
                )

        return ProcessedBiomarker(
            original_name=biomarker.name,
            original_value=biomarker.value,
            original_unit=biomarker.unit,
            matched=True,
            standard_code=standard.code,
            standard_name=standard.name,
            standard_value=standard_value,
            standard_unit=standard.standard_unit,
            reference_min=low,
            reference_max=high,
            flag=compute_flag(standard_value, low, high),
            validation_issues=issues,
            conversion_factor=factor,
            match_score=match.score,
        )

    def _synthesize_vitamin_d_total(
        self, processed: list[ProcessedBiomarker], gender: str
    ) -> ProcessedBiomarker | None:
        parts: dict[str, ProcessedBiomarker] = {}
        for item in processed:
            if item.standard_code == TOTAL_VITAMIN_D_CODE:
                return None
            if _TOTAL_VITAMIN_D_RE.search(self._normalizer.normalize(item.original_name)):
                return None
            if (
                item.matched
                and item.standard_code in VITAMIN_D_PARTS
                and item.standard_value is not None
            ):
                parts.setdefault(item.standard_code, item)

        if len(parts) != len(VITAMIN_D_PARTS):
            return None
        d2, d3 = (parts[code] for code in VITAMIN_D_PARTS)
        if d2.standard_unit != d3.standard_unit:
            return None

        unit = d3.standard_unit or ""
        total_standard = self._by_code.get(TOTAL_VITAMIN_D_CODE)
        places = total_standard.decimal_places if total_standard else 1
        total_value = round_half_up(
            (d2.standard_value or 0.0) + (d3.standard_value or 0.0), places
        )
        Log.info("Synthesized total vitamin D", value=total_value, unit=unit)

        factor = conversion_factor(total_standard, unit) if total_standard else None
        if total_standard is None or factor is None:
            return ProcessedBiomarker(
                original_name=TOTAL_VITAMIN_D_NAME,
                original_value=total_value,
                original_unit=unit,
                calculated=True,
            )

        standard_value = round_half_up(total_value * factor, places)
        reference = total_standard.reference_range(gender)
        low = reference.low if reference else None
        high = reference.high if reference else None
        return ProcessedBiomarker(
            original_name=TOTAL_VITAMIN_D_NAME,
            original_value=total_value,
            original_unit=unit,
            matched=True,
            standard_code=total_standard.code,
            standard_name=total_standard.name,
            standard_value=standard_value,
            standard_unit=total_standard.standard_unit,
            reference_min=low,
            reference_max=high,
            flag=compute_flag(standard_value, low, high),
            conversion_factor=factor,
            calculated=True,
        )
