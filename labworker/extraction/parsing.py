"""Turns raw model text into typed extraction data."""

import json
import math
import re
from typing import Any

from labworker.extraction.exceptions import ResponseParseError
from labworker.extraction.models import Biomarker, DocumentMetadata

_VALID_FLAGS = frozenset({"high", "low", "normal"})
_VALID_GENDERS = frozenset({"male", "female", "other"})
_THOUSANDS = re.compile(r"^-?\d{1,3}(,\d{3})+(\.\d+)?$")
_DECIMAL_COMMA = re.compile(r"^-?\d+,\d+$")
_COMPARATOR_PREFIX = re.compile(r"^(<=|>=|[<>≤≥=~])\s*")


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    cleaned = raw.strip()
    if not cleaned.startswith("```"):
        return cleaned
    lines = cleaned.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def parse_json_object(raw: str) -> dict[str, Any] | None:
    """Parse a model response into a JSON object.

    Returns None for a blank response. NaN and Infinity literals are read as
    null, so an entry carrying one is dropped like any non-numeric value.

    Raises:
        ResponseParseError: if the text is not JSON or not an object.
    """
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        return None
    try:
        parsed = json.loads(cleaned, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError("JSON response must be an object")
    return parsed


def _reject_constant(_name: str) -> None:
    return None


def coerce_number(raw: Any) -> float | None:
    """Read a number from a JSON value, accepting strings like "1,234.5" or "<0.5"."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            return _finite(float(raw))
        except OverflowError:
            return None
    if not isinstance(raw, str):
        return None
    text = _COMPARATOR_PREFIX.sub("", raw.strip()).replace(" ", "")
    if _THOUSANDS.match(text):
        text = text.replace(",", "")
    elif _DECIMAL_COMMA.match(text):
        text = text.replace(",", ".")
    try:
        return _finite(float(text))
    except ValueError:
        return None


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def build_biomarkers(raw: Any) -> tuple[list[Biomarker], list[str]]:
    """Build biomarkers from a JSON list, dropping malformed entries.

    Returns the biomarkers and a note for every dropped entry.
    """
    if not isinstance(raw, list):
        return [], []
    biomarkers: list[Biomarker] = []
    notes: list[str] = []
    for index, item in enumerate(raw):
        biomarker, note = _build_biomarker(item, index)
        if biomarker is not None:
            biomarkers.append(biomarker)
        if note:
            notes.append(note)
    return biomarkers, notes


def _build_biomarker(raw: Any, index: int) -> tuple[Biomarker | None, str | None]:
    if not isinstance(raw, dict):
        return None, f"Dropped biomarker at index {index}: not an object"
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None, f"Dropped biomarker at index {index}: missing name"
    value = coerce_number(raw.get("value"))
    if value is None:
        return None, f"Dropped biomarker '{name.strip()}': non-numeric value {raw.get('value')!r}"
    return (
        Biomarker(
            name=name.strip(),
            value=value,
            unit=_optional_str(raw.get("unit")) or "",
            secondary_value=coerce_number(raw.get("secondary_value")),
            secondary_unit=_optional_str(raw.get("secondary_unit")),
            reference_min=coerce_number(raw.get("reference_min")),
            reference_max=coerce_number(raw.get("reference_max")),
            flag=_build_flag(raw.get("flag")),
        ),
        None,
    )


def _build_flag(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    flag = raw.strip().lower()
    return flag if flag in _VALID_FLAGS else None


def build_metadata(raw: Any) -> DocumentMetadata:
    """Build document metadata, ignoring fields of the wrong type."""
    if not isinstance(raw, dict):
        return DocumentMetadata()
    gender = _optional_str(raw.get("patient_gender"))
    if gender is not None:
        gender = gender.lower()
        if gender not in _VALID_GENDERS:
            gender = None
    return DocumentMetadata(
        patient_name=_optional_str(raw.get("patient_name")),
        patient_gender=gender,
        patient_birth_date=_optional_str(raw.get("patient_birth_date")),
        lab_name=_optional_str(raw.get("lab_name")),
        ordering_clinician=_optional_str(raw.get("ordering_clinician")),
        test_date=_optional_str(raw.get("test_date")),
    )


def _optional_str(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    return raw.strip() or None
