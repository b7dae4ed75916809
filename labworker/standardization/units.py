from decimal import ROUND_HALF_UP, Decimal

from labworker.database.models import BiomarkerStandard

_MICRO_SIGNS = str.maketrans({"µ": "u", "μ": "u"})


def normalize_unit(unit: str | None) -> str:
    """Canonical unit key: lowercase, no whitespace, micro signs folded to 'u'."""
    if not unit:
        return ""
    return "".join(unit.translate(_MICRO_SIGNS).lower().split())


def conversion_factor(standard: BiomarkerStandard, unit: str | None) -> float | None:
    """Return the multiplier from unit into the standard's unit, or None if unknown."""
    key = normalize_unit(unit)
    if key == normalize_unit(standard.standard_unit):
        return 1.0
    for candidate, factor in (standard.unit_conversions or {}).items():
        if normalize_unit(candidate) == key:
            return factor
    return None


def round_half_up(value: float, decimal_places: int) -> float:
    """Round with ties away from zero, e.g. 122.45 -> 122.5 at one place."""
    quantum = Decimal(1).scaleb(-max(decimal_places, 0))
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
