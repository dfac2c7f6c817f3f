# tests/test_logging_config.py
import logging
import pytest
from csv_processor.utils.logging_config import (
    PipelineLogger,
    configure_third_party_logging,
    get_logger,
    log_execution_time,
)

class TestLoggingConfig:

    def test_get_logger_namespaces_names(self):
        assert get_logger("engine").name == "csv_processor.engine"
        assert get_logger("csv_processor.pipeline").name == "csv_processor.pipeline"

    def test_pipeline_logger_records_metrics(self, caplog):
        logger = get_logger("tests")

        with caplog.at_level(logging.INFO, logger="csv_processor"):
            with PipelineLogger("parsing", logger) as step:
                step.log_metric("rows", 3)

        assert "[parsing] Metric - rows: 3" in caplog.text

    def test_pipeline_logger_reports_failures(self, caplog):
        with caplog.at_level(logging.ERROR, logger="csv_processor"):
            with pytest.raises(ValueError):
                with PipelineLogger("operation", get_logger("tests")):
                    raise ValueError("bad input")

        assert "=== Failed operation" in caplog.text
        assert "Error: bad input" in caplog.text

    def test_log_execution_time_reraises(self, caplog):
        @log_execution_time
        def broken():
            raise RuntimeError("nope")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                broken()

        assert "Failed broken" in caplog.text

    def test_third_party_loggers_are_quieted(self):
        configure_third_party_logging()

        assert logging.getLogger("langgraph").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
