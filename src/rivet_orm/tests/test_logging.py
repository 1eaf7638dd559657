"""
Tests for logging setup and formatters.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rivet_orm.runtime.logging import (
    JSONLFormatter,
    get_diagnostics_logger,
    get_log_file,
    get_logger,
    log_with_context,
    setup_logging,
)


class TestLogging:
    """Tests for component loggers and JSONL output."""

    def test_component_loggers_are_cached(self) -> None:
        assert get_logger("SQL") is get_logger("SQL")
        assert get_diagnostics_logger().name == "rivet.n_plus_1"

    def test_jsonl_formatter(self) -> None:
        record = logging.LogRecord("rivet.sql", logging.INFO, __file__, 1, "Executed", None, None)
        record.component = "SQL"
        record.context = {"rows": 3}

        data = json.loads(JSONLFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["component"] == "SQL"
        assert data["message"] == "Executed"
        assert data["context"] == {"rows": 3}

    def test_setup_writes_jsonl_file(self, tmp_path: Path) -> None:
        setup_logging(tmp_path, level="DEBUG", console=False)
        logger = get_logger("ORM")

        log_with_context(logger, logging.INFO, "Inserted User", model="User", key=1)
        for handler in logging.getLogger("rivet").handlers:
            handler.flush()

        lines = get_log_file().read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "Inserted User"
        assert entry["context"] == {"model": "User", "key": 1}

        root = logging.getLogger("rivet")
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        root.setLevel(logging.NOTSET)
