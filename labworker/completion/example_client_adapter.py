"""Example completion client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseCompletionClient and register the provider in CompletionClientFactory.
"""

import json
from typing import ClassVar

from labworker.completion.client_base import BaseCompletionClient


class ExampleClientAdapter(BaseCompletionClient):
    """Example adapter that returns fixed, valid model responses.

    No network calls. Useful for local development and tests. Extraction
    requests get a small canned report; verification requests get an answer
    with no corrections, which keeps the candidate list as-is.
    """

    EXTRACTION_RESPONSE: ClassVar[dict[str, object]] = {
        "metadata": {
            "patient_name": None,
            "patient_gender": None,
            "patient_birth_date": None,
            "lab_name": "Example Laboratory",
            "ordering_clinician": None,
            "test_date": None,
        },
        "biomarkers": [
            {
                "name": "Glucose",
                "value": 5.2,
                "unit": "mmol/L",
                "secondary_value": None,
                "secondary_unit": None,
                "reference_min": 3.9,
                "reference_max": 5.6,
                "flag": "normal",
            },
            {
                "name": "Hemoglobin",
                "value": 14.1,
                "unit": "g/dL",
                "secondary_value": None,
                "secondary_unit": None,
                "reference_min": 13.0,
                "reference_max": 17.0,
                "flag": "normal",
            },
        ],
    }

    VERIFICATION_RESPONSE: ClassVar[dict[str, object]] = {"corrections": []}

    def complete(
        self,
        *,
        document_bytes: bytes,
        instruction: str,
        json_schema: dict[str, object],
        max_output_tokens: int,
        schema_name: str = "lab_report",
    ) -> str:
        _ = document_bytes, instruction, json_schema, max_output_tokens
        if schema_name == "verification_result":
            return json.dumps(self.VERIFICATION_RESPONSE)
        return json.dumps(self.EXTRACTION_RESPONSE)
