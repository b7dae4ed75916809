"""Combines per-page results into one document-level result."""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum

from labworker.extraction.models import (
    Biomarker,
    DocumentMetadata,
    ExtractedDocument,
    VerificationStatus,
)
from labworker.logging.logger import Log
from labworker.processor.models import PageResult

_NAME_FOLDS = (
    ("cholesterol", "chol"),
    ("haemoglobin", "hgb"),
    ("hemoglobin", "hgb"),
    ("triglyceride", "trig"),
    ("glucose", "gluc"),
    ("creatinine", "creat"),
    ("bilirubin", "bili"),
)


class ConflictPolicy(str, Enum):
    """What to keep when the same biomarker has different values on two pages."""

    KEEP_BOTH = "keep_both"
    PREFER_LATER = "prefer_later"
    PREFER_EARLIER = "prefer_earlier"


@dataclass(frozen=True)
class BiomarkerConflict:
    biomarker_name: str
    source_pages: tuple[int, ...]
    values: tuple[float, ...]
    kept_values: tuple[float, ...]


@dataclass(frozen=True)
class MergeResult:
    document: ExtractedDocument
    verification_status: VerificationStatus
    duplicates_removed: int = 0
    corrections: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    conflicts: list[BiomarkerConflict] = field(default_factory=list)
    source_pages: dict[str, list[int]] = field(default_factory=dict)


def biomarker_key(name: str, unit: str) -> str:
    """Dedup key: folded alphanumeric name plus normalized unit."""
    normalized_name = re.sub(r"[^a-z0-9]", "", name.lower())
    for long_form, short_form in _NAME_FOLDS:
        normalized_name = normalized_name.replace(long_form, short_form)
    normalized_unit = re.sub(r"[^a-z0-9/]", "", (unit or "").lower())
    return f"{normalized_name}:{normalized_unit}"


def duplicates_note(count: int) -> str:
    return f"Removed {count} duplicate biomarker(s) across pages"


class BiomarkerMerger:
    """Deduplicates biomarkers across pages and folds page statuses and corrections."""

    def __init__(
        self,
        *,
        value_tolerance: float = 0.01,
        conflict_policy: ConflictPolicy = ConflictPolicy.KEEP_BOTH,
    ) -> None:
        self._value_tolerance = value_tolerance
        self._conflict_policy = conflict_policy

    def merge(self, page_results: list[PageResult]) -> MergeResult:
        ordered = sorted(page_results, key=lambda result: result.page_number)

        merged: list[Biomarker] = []
        slots: dict[str, list[int]] = {}
        source_pages: dict[str, list[int]] = {}
        entry_pages: list[int] = []
        warnings: list[str] = []
        conflicts: list[BiomarkerConflict] = []
        duplicates_removed = 0

        for result in ordered:
            for biomarker in result.biomarkers:
                key = biomarker_key(biomarker.name, biomarker.unit)
                source_pages.setdefault(key, []).append(result.page_number)
                indexes = slots.setdefault(key, [])

                if not indexes:
                    indexes.append(len(merged))
                    merged.append(biomarker)
                    entry_pages.append(result.page_number)
                    continue

                close = self._find_within_tolerance(merged, indexes, biomarker)
                if close is not None:
                    merged[close] = _fill_missing(biomarker, merged[close])
                    entry_pages[close] = result.page_number
                    duplicates_removed += 1
                    continue

                earlier_index = indexes[-1]
                earlier = merged[earlier_index]
                earlier_page = entry_pages[earlier_index]
                warnings.append(
                    f'Biomarker "{biomarker.name}" has different values on pages '
                    f"{earlier_page} and {result.page_number}: "
                    f"{earlier.value} vs {biomarker.value}"
                )

                if self._conflict_policy == ConflictPolicy.KEEP_BOTH:
                    indexes.append(len(merged))
                    merged.append(biomarker)
                    entry_pages.append(result.page_number)
                    kept: tuple[float, ...] = (earlier.value, biomarker.value)
                elif self._conflict_policy == ConflictPolicy.PREFER_LATER:
                    merged[earlier_index] = biomarker
                    entry_pages[earlier_index] = result.page_number
                    duplicates_removed += 1
                    kept = (biomarker.value,)
                else:
                    duplicates_removed += 1
                    kept = (earlier.value,)

                conflicts.append(
                    BiomarkerConflict(
                        biomarker_name=biomarker.name,
                        source_pages=(earlier_page, result.page_number),
                        values=(earlier.value, biomarker.value),
                        kept_values=kept,
                    )
                )

        corrections = _collapse(
            correction for result in ordered for correction in result.corrections
        )
        if duplicates_removed > 0:
            corrections.append(duplicates_note(duplicates_removed))

        status = VerificationStatus.worst([result.verification_status for result in ordered])
        metadata = _first_page_metadata(ordered)

        Log.info(
            "Merged page results",
            pages=len(ordered),
            biomarkers=len(merged),
            duplicates_removed=duplicates_removed,
            conflicts=len(conflicts),
            status=status.value,
        )
        for warning in warnings:
            Log.warning(warning)

        return MergeResult(
            document=ExtractedDocument(metadata=metadata, biomarkers=merged),
            verification_status=status,
            duplicates_removed=duplicates_removed,
            corrections=corrections,
            warnings=warnings,
            conflicts=conflicts,
            source_pages=source_pages,
        )

    def _find_within_tolerance(
        self, merged: list[Biomarker], indexes: list[int], biomarker: Biomarker
    ) -> int | None:
        for index in reversed(indexes):
            if abs(merged[index].value - biomarker.value) <= self._value_tolerance:
                return index
        return None


def single_page_result(result: PageResult) -> MergeResult:
    """Wrap a single-shot result in the same shape merge() returns, without dedup."""
    return MergeResult(
        document=ExtractedDocument(
            metadata=result.metadata or DocumentMetadata(),
            biomarkers=list(result.biomarkers),
        ),
        verification_status=result.verification_status,
        corrections=_collapse(result.corrections),
        source_pages={
            biomarker_key(b.name, b.unit): [result.page_number] for b in result.biomarkers
        },
    )


def _fill_missing(later: Biomarker, earlier: Biomarker) -> Biomarker:
    """Keep the later entry, borrowing range and flag from the earlier one when absent."""
    updates: dict[str, object] = {}
    if later.reference_min is None and later.reference_max is None:
        updates["reference_min"] = earlier.reference_min
        updates["reference_max"] = earlier.reference_max
    if later.flag is None and earlier.flag is not None:
        updates["flag"] = earlier.flag
    return replace(later, **updates) if updates else later


def _first_page_metadata(ordered: list[PageResult]) -> DocumentMetadata:
    for result in ordered:
        if result.page_number == 1 and result.metadata is not None:
            return result.metadata
    return DocumentMetadata()


def _collapse(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    collapsed: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        collapsed.append(item)
    return collapsed
