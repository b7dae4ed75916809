"""Tests for ExampleClientAdapter (template/reference adapter)."""

import json

from labworker.completion.example_client_adapter import ExampleClientAdapter


def _complete(adapter: ExampleClientAdapter, schema_name: str = "lab_report") -> str:
    return adapter.complete(
        document_bytes=b"%PDF",
        instruction="any",
        json_schema={"type": "object"},
        max_output_tokens=10,
        schema_name=schema_name,
    )


class TestExampleClientAdapter:
    def test_returns_extraction_structure(self) -> None:
        data = json.loads(_complete(ExampleClientAdapter()))
        assert "metadata" in data
        assert [b["name"] for b in data["biomarkers"]] == ["Glucose", "Hemoglobin"]

    def test_returns_verification_without_corrections(self) -> None:
        data = json.loads(_complete(ExampleClientAdapter(), "verification_result"))
        assert data == {"corrections": []}

    def test_ignores_document_and_instruction(self) -> None:
        adapter = ExampleClientAdapter()
        r1 = adapter.complete(
            document_bytes=b"a", instruction="x", json_schema={}, max_output_tokens=1
        )
        r2 = adapter.complete(
            document_bytes=b"b", instruction="y", json_schema={"k": "v"}, max_output_tokens=2
        )
        assert r1 == r2
