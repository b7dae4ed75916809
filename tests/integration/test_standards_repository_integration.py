import pytest

from labworker.database.repositories.standards_repository import StandardsRepository


@pytest.mark.integration
class TestListStandards:
    def test_reads_seeded_catalog(self, seed_standards: list[str]) -> None:
        standards = {s.code: s for s in StandardsRepository().list_standards()}

        glucose = standards["glucose"]
        assert glucose.aliases == ("GLU", "Blood glucose")
        assert glucose.unit_conversions == {"mmol/L": 18.0182}
        assert glucose.reference_range("male") is not None
        assert glucose.decimal_places == 0
