from typing import Any

import psycopg
from psycopg.rows import dict_row

from labworker.database.connection import get_connection
from labworker.database.models import BiomarkerStandard, ReferenceRangeRecord
from labworker.logging.logger import Log
from labworker.standardization.exceptions import StandardsCatalogError


class StandardsRepository:
    """Read-only access to the biomarker_standards catalog."""

    def list_standards(self) -> list[BiomarkerStandard]:
        """Fetch every catalog entry ordered by code.

        Raises:
            StandardsCatalogError: if the catalog cannot be queried.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        SELECT code, name, aliases, standard_unit,
                               unit_conversions, reference_ranges, decimal_places
                        FROM biomarker_standards
                        ORDER BY code
                        """
                    )
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise StandardsCatalogError(f"Failed to load biomarker standards: {exc}") from exc

        return [_row_to_standard(row) for row in rows]


def _row_to_standard(row: dict[str, Any]) -> BiomarkerStandard:
    code = row["code"]
    decimal_places = row.get("decimal_places")
    return BiomarkerStandard(
        code=code,
        name=row["name"],
        standard_unit=row["standard_unit"],
        aliases=tuple(row.get("aliases") or ()),
        unit_conversions=_build_conversions(code, row.get("unit_conversions")),
        reference_ranges=_build_ranges(row.get("reference_ranges")),
        decimal_places=1 if decimal_places is None else int(decimal_places),
    )


def _build_conversions(code: str, raw: object) -> dict[str, float] | None:
    if not isinstance(raw, dict):
        return None
    conversions: dict[str, float] = {}
    for unit, factor in raw.items():
        try:
            value = float(factor)
        except (TypeError, ValueError):
            value = 0.0
        if value <= 0:
            Log.warning(
                "Dropping non-positive unit conversion factor",
                code=code,
                unit=unit,
                factor=factor,
            )
            continue
        conversions[str(unit)] = value
    return conversions


def _build_ranges(raw: object) -> dict[str, ReferenceRangeRecord] | None:
    if not isinstance(raw, dict):
        return None
    ranges: dict[str, ReferenceRangeRecord] = {}
    for gender, bounds in raw.items():
        if not isinstance(bounds, dict):
            continue
        low, high = bounds.get("low"), bounds.get("high")
        if low is None or high is None:
            continue
        ranges[str(gender).lower()] = ReferenceRangeRecord(low=float(low), high=float(high))
    return ranges
