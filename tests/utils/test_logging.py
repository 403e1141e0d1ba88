"""
Unit tests for logging setup module.

This module contains tests for logging configuration, formatting,
and performance decorators.
"""

import json
import logging
import logging.handlers
import sys
from pathlib import Path

import pytest

from src.utils.logging_setup import (
    setup_logging,
    get_logger,
    log_performance,
    JSONFormatter
)


def make_record(msg="Join finished", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="modules.spatial_join_analyzer.spatial_join.join_engine",
        level=level,
        pathname="/app/join_engine.py",
        lineno=87,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    record.funcName = "join"
    record.module = "join_engine"
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test suite for JSONFormatter class."""
    
    def test_json_formatter_basic(self):
        """Test the standard fields of a JSON log line."""
        parsed = json.loads(JSONFormatter(datefmt='%Y-%m-%d %H:%M:%S').format(make_record()))
        
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "modules.spatial_join_analyzer.spatial_join.join_engine"
        assert parsed["message"] == "Join finished"
        assert parsed["function"] == "join"
        assert parsed["line"] == 87
        assert "timestamp" in parsed
    
    def test_json_formatter_with_exception(self):
        """Test JSON formatting with exception information."""
        try:
            raise ValueError("bad coordinates")
        except ValueError:
            record = make_record("Predicate failed", logging.ERROR, exc_info=sys.exc_info())
        
        parsed = json.loads(JSONFormatter().format(record))
        
        assert parsed["level"] == "ERROR"
        assert "ValueError: bad coordinates" in parsed["exception"]
    
    def test_json_formatter_extra_fields(self):
        """Test extra fields are included and non-JSON values are stringified."""
        record = make_record(dataset="ev_chargers.json", skipped=3, output=Path("out"))
        
        parsed = json.loads(JSONFormatter().format(record))
        
        assert parsed["dataset"] == "ev_chargers.json"
        assert parsed["skipped"] == 3
        assert parsed["output"] == "out"
        assert "pathname" not in parsed
        assert "args" not in parsed


class TestSetupLogging:
    """Test suite for setup_logging function."""
    
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        """Put the root logger back the way it was after each test."""
        root_logger = logging.getLogger()
        handlers = list(root_logger.handlers)
        level = root_logger.level
        yield
        for handler in root_logger.handlers:
            if handler not in handlers:
                handler.close()
        root_logger.handlers = handlers
        root_logger.setLevel(level)
    
    def test_setup_logging_development(self):
        """Test development logging writes plain text to stdout."""
        setup_logging(environment="development", log_level="DEBUG")
        
        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        handler = root_logger.handlers[0]
        assert handler.stream is sys.stdout
        assert not isinstance(handler.formatter, JSONFormatter)
    
    def test_setup_logging_production(self):
        """Test production logging uses the JSON formatter."""
        setup_logging(environment="production", log_level="info")
        
        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)
    
    def test_setup_logging_with_log_dir(self, tmp_path):
        """Test a rotating log file is added when a log directory is configured."""
        log_dir = tmp_path / "logs"
        setup_logging(environment="production", log_level="INFO", log_dir=str(log_dir))
        
        get_logger("synergy.test").info("Analysis run", extra={"run_id": "42"})
        
        file_handlers = [h for h in logging.getLogger().handlers
                         if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 10 * 1024 * 1024
        file_handlers[0].flush()
        
        lines = (log_dir / "synergy_production.log").read_text().strip().splitlines()
        parsed = json.loads(lines[-1])
        assert parsed["message"] == "Analysis run"
        assert parsed["run_id"] == "42"
    
    def test_setup_logging_replaces_handlers(self):
        """Test that repeated setup does not duplicate handlers."""
        setup_logging(environment="development")
        setup_logging(environment="development")
        
        assert len(logging.getLogger().handlers) == 1
    
    def test_setup_logging_quiets_third_party_loggers(self):
        """Test third-party loggers are limited to warnings."""
        setup_logging(environment="development", log_level="DEBUG")
        
        assert logging.getLogger("shapely").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("requests").level == logging.WARNING
    
    def test_setup_logging_invalid_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(AttributeError):
            setup_logging(environment="development", log_level="VERBOSE")


class TestGetLogger:
    """Test suite for get_logger function."""
    
    def test_get_logger_returns_named_logger(self):
        logger = get_logger("modules.spatial_join_analyzer")
        
        assert isinstance(logger, logging.Logger)
        assert logger is get_logger("modules.spatial_join_analyzer")


class TestLogPerformance:
    """Test suite for log_performance decorator."""
    
    def test_log_performance_success(self, caplog):
        """Test start and completion are logged around the call."""
        @log_performance
        def run_join(references, targets=None):
            return len(references)
        
        with caplog.at_level(logging.INFO):
            result = run_join([1, 2, 3], targets=[])
        
        assert result == 3
        assert "Starting run_join" in caplog.text
        assert "Completed run_join in" in caplog.text
    
    def test_log_performance_with_exception(self, caplog):
        """Test failures are logged and re-raised."""
        @log_performance
        def load_dataset():
            raise ValueError("missing features list")
        
        with caplog.at_level(logging.INFO):
            with pytest.raises(ValueError):
                load_dataset()
        
        assert "Failed load_dataset" in caplog.text
        assert "missing features list" in caplog.text
    
    def test_log_performance_preserves_metadata(self):
        """Test that log_performance preserves function metadata."""
        @log_performance
        def run_join():
            """Run the join."""
        
        assert run_join.__name__ == "run_join"
        assert run_join.__doc__ == "Run the join."
