import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest
from psycopg.types.json import Jsonb

from labworker.config.settings import Settings
from labworker.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "sql" / "schema.sql"
TEST_USER_ID = 900001

_STANDARDS = [
    (
        "glucose",
        "Glucose",
        ["GLU", "Blood glucose"],
        "mg/dL",
        {"mmol/L": 18.0182},
        {"male": {"low": 70, "high": 100}, "female": {"low": 70, "high": 100}},
        0,
    ),
    (
        "hemoglobin",
        "Hemoglobin",
        ["Hb", "HGB"],
        "g/dL",
        {"g/L": 0.1},
        {"male": {"low": 13.5, "high": 17.5}, "female": {"low": 12.0, "high": 15.5}},
        1,
    ),
]


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "labworker_test")
    return Settings(extraction_provider="example", verification_provider="example")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to a scratch database")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, object]], None, None]:
    cleanup: list[tuple[str, object]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, key in cleanup:
                if table == "lab_uploads":
                    cur.execute("DELETE FROM lab_uploads WHERE id = %s", (key,))
                elif table == "user_profiles":
                    cur.execute("DELETE FROM user_profiles WHERE user_id = %s", (key,))
                elif table == "biomarker_standards":
                    cur.execute("DELETE FROM biomarker_standards WHERE code = %s", (key,))
        conn.commit()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_upload(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, object]],
    files_root: Path,
    sample_pdf_bytes: bytes,
) -> int:
    storage_path = f"uploads/{TEST_USER_ID}/report.pdf"
    pdf_path = files_root / storage_path
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    pdf_path.write_bytes(sample_pdf_bytes)
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO lab_uploads (user_id, filename, storage_path, storage_disk, file_size)
            VALUES (%s, %s, %s, 'local', %s)
            RETURNING id
            """,
            (TEST_USER_ID, "report.pdf", storage_path, len(sample_pdf_bytes)),
        )
        row = cur.fetchone()
        assert row is not None
        upload_id = int(row[0])
    db_conn.commit()
    integration_cleanup.append(("lab_uploads", upload_id))
    return upload_id


@pytest.fixture
def seed_profile(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, object]],
) -> int:
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO user_profiles (user_id, gender) VALUES (%s, 'female')
            ON CONFLICT (user_id) DO UPDATE SET gender = EXCLUDED.gender
            """,
            (TEST_USER_ID,),
        )
    db_conn.commit()
    integration_cleanup.append(("user_profiles", TEST_USER_ID))
    return TEST_USER_ID


@pytest.fixture
def seed_standards(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, object]],
) -> list[str]:
    with db_conn.cursor() as cur:
        for code, name, aliases, unit, conversions, ranges, places in _STANDARDS:
            cur.execute(
                """
                INSERT INTO biomarker_standards
                (code, name, aliases, standard_unit, unit_conversions, reference_ranges, decimal_places)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (code) DO UPDATE SET
                    name = EXCLUDED.name,
                    aliases = EXCLUDED.aliases,
                    standard_unit = EXCLUDED.standard_unit,
                    unit_conversions = EXCLUDED.unit_conversions,
                    reference_ranges = EXCLUDED.reference_ranges,
                    decimal_places = EXCLUDED.decimal_places
                """,
                (code, name, aliases, unit, Jsonb(conversions), Jsonb(ranges), places),
            )
            integration_cleanup.append(("biomarker_standards", code))
    db_conn.commit()
    return [standard[0] for standard in _STANDARDS]
