import logging

import pytest

from labworker.logging.logger import Log


class TestRender:
    def test_message_without_context(self) -> None:
        assert Log._render("hello", {}) == "hello"

    def test_appends_key_value_pairs(self) -> None:
        rendered = Log._render("Page processed", {"page": 3, "status": "clean"})
        assert rendered == "Page processed | page=3 status=clean"


class TestLogging:
    def test_info_includes_context(self, caplog: pytest.LogCaptureFixture) -> None:
        Log._logger.propagate = True
        try:
            with caplog.at_level(logging.INFO, logger="labworker"):
                Log.info("Upload processed", upload_id=7)
        finally:
            Log._logger.propagate = False
        assert "Upload processed | upload_id=7" in caplog.text

    def test_configure_sets_level_once(self) -> None:
        Log.configure("warning")
        Log.configure("debug")
        assert Log._logger.level == logging.DEBUG
        assert len(Log._logger.handlers) == 1
