"""
Test suite for logging and monitoring functionality
"""

import pytest
import json
import logging
import sys
import threading

from dcf_builder.analyze.deterministic import run_dcf
from dcf_builder.data_pipeline.models import TerminalValueInputs
from dcf_builder.utils import logging_config
from dcf_builder.utils.exceptions import DivergentTerminalValueError
from dcf_builder.utils.logging_config import (
    EngineLogger,
    StructuredFormatter,
    configure_logging,
    performance_monitor,
)


@pytest.fixture
def file_logger(temp_directory):
    """Engine logger writing JSON files into a temporary directory"""
    instance = EngineLogger(log_dir=str(temp_directory))
    yield instance
    instance.close()


class TestEngineLogger:
    """Test engine logging functionality"""

    def test_logger_initialization(self, file_logger, temp_directory):
        """Test logger initialization and file creation"""
        assert temp_directory.exists()
        assert (temp_directory / "dcf_application.log").exists()
        assert (temp_directory / "dcf_performance.log").exists()
        assert (temp_directory / "dcf_errors.log").exists()

        assert hasattr(file_logger, 'app_logger')
        assert hasattr(file_logger, 'perf_logger')
        assert hasattr(file_logger, 'error_logger')

    def test_structured_logging(self, file_logger, temp_directory):
        """Test structured JSON logging"""
        file_logger.app_logger.info("Test message", extra={'test_field': 'test_value'})

        with open(temp_directory / "dcf_application.log", 'r') as f:
            log_data = json.loads(f.readline())

        assert log_data['message'] == "Test message"
        assert log_data['level'] == "INFO"
        assert log_data['test_field'] == 'test_value'
        assert 'timestamp' in log_data

    def test_performance_metric_logging(self):
        """Test performance metric logging"""
        engine = EngineLogger()
        engine.log_performance_metric(
            operation="test_operation",
            duration=0.5,
            success=True,
            module="test_module",
            test_detail="example"
        )

        assert len(engine.performance_metrics) == 1
        metric = engine.performance_metrics[0]

        assert metric.operation == "test_operation"
        assert metric.duration == 0.5
        assert metric.success is True
        assert metric.details == {"test_detail": "example"}

    def test_error_event_logging(self, file_logger, temp_directory):
        """Test error events are stored and written to the error log"""
        try:
            raise DivergentTerminalValueError("growth 0.09 >= wacc 0.08")
        except DivergentTerminalValueError as e:
            file_logger.log_error_event(e, operation="terminal_value", module="test_module", ticker="TEST")

        assert len(file_logger.error_events) == 1
        event = file_logger.error_events[0]
        assert event.error_type == "DivergentTerminalValueError"
        assert event.context == {"ticker": "TEST"}

        with open(temp_directory / "dcf_errors.log", 'r') as f:
            log_data = json.loads(f.readline())
        assert log_data['error_type'] == "DivergentTerminalValueError"
        assert log_data['level'] == "WARNING"

    def test_performance_summary(self):
        """Test performance summary aggregation"""
        engine = EngineLogger()
        assert engine.get_performance_summary() == {'message': 'No recent metrics available'}

        engine.log_performance_metric("run_dcf", 0.2, True, "test")
        engine.log_performance_metric("run_dcf", 0.4, False, "test")
        engine.log_performance_metric("build_sensitivity_table", 1.0, True, "test")

        summary = engine.get_performance_summary()
        assert summary['total_operations'] == 3
        assert summary['success_rate'] == pytest.approx(2 / 3)
        assert summary['operations']['run_dcf']['count'] == 2
        assert summary['operations']['run_dcf']['avg_duration'] == pytest.approx(0.3)
        assert summary['operations']['run_dcf']['success_rate'] == 0.5

    def test_error_summary(self):
        """Test error summary groups by type"""
        engine = EngineLogger()
        assert engine.get_error_summary() == {'message': 'No recent errors'}

        engine.log_error_event(ValueError("a"), "run_dcf", "test")
        engine.log_error_event(ValueError("b"), "implied_growth", "test")

        summary = engine.get_error_summary()
        assert summary['total_errors'] == 2
        assert summary['error_types']['ValueError']['operations'] == ["implied_growth", "run_dcf"]

    def test_bounded_history(self):
        """Test metric storage keeps only the most recent records"""
        engine = EngineLogger(max_records=10)
        for i in range(25):
            engine.log_performance_metric(f"op_{i}", 0.01, True, "test")

        assert len(engine.performance_metrics) == 10
        assert engine.performance_metrics[0].operation == "op_15"

    def test_thread_safety(self):
        """Test concurrent metric logging loses no records"""
        engine = EngineLogger()

        def worker(worker_id):
            for i in range(50):
                engine.log_performance_metric(f"worker_{worker_id}", 0.001, True, "test")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(engine.performance_metrics) == 200


class TestStructuredFormatter:
    """Test JSON formatter"""

    def test_format_includes_extra_fields(self):
        """Test custom record attributes are emitted"""
        record = logging.LogRecord("dcf_builder.test", logging.INFO, __file__, 10,
                                   "valued %s", ("TEST",), None)
        record.ticker = "TEST"

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data['message'] == "valued TEST"
        assert log_data['logger'] == "dcf_builder.test"
        assert log_data['ticker'] == "TEST"
        assert 'args' not in log_data

    def test_format_exception(self):
        """Test exception details are serialised"""
        try:
            raise ZeroDivisionError("boom")
        except ZeroDivisionError:
            record = logging.LogRecord("dcf_builder", logging.ERROR, __file__, 10, "failed", (), sys.exc_info())

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data['exception']['type'] == "ZeroDivisionError"
        assert "boom" in log_data['exception']['message']


class TestPerformanceMonitor:
    """Test the monitoring decorator"""

    def test_records_success(self, fresh_engine_logger, company, assumptions, wacc_inputs, terminal_inputs):
        """Test a successful valuation records a metric"""
        run_dcf(company, assumptions, wacc_inputs, terminal_inputs)

        metric = fresh_engine_logger.performance_metrics[-1]
        assert metric.operation == "run_dcf"
        assert metric.success is True
        assert metric.duration >= 0
        assert metric.details['function'] == "run_dcf"

    def test_records_failure_and_reraises(self, fresh_engine_logger, company, assumptions, wacc_inputs):
        """Test failures are logged and re-raised unchanged"""
        with pytest.raises(DivergentTerminalValueError):
            run_dcf(company, assumptions, wacc_inputs, TerminalValueInputs.perpetuity(0.5))

        assert fresh_engine_logger.error_events[-1].operation == "run_dcf"
        metric = fresh_engine_logger.performance_metrics[-1]
        assert metric.success is False
        assert metric.details['error_type'] == "DivergentTerminalValueError"

    def test_preserves_function_metadata(self, fresh_engine_logger):
        """Test functools.wraps keeps the wrapped name and return value"""
        @performance_monitor("custom_operation", module="tests")
        def add(a, b):
            """Add two numbers"""
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"
        assert add.__doc__ == "Add two numbers"
        assert fresh_engine_logger.performance_metrics[-1].module == "tests"


class TestConfigureLogging:
    """Test logging configuration"""

    def test_configure_replaces_active_instance(self, fresh_engine_logger, temp_directory):
        """Test configure_logging installs a new instance used by the decorator"""
        configured = configure_logging(level="DEBUG", log_dir=str(temp_directory), console=False)
        try:
            assert logging_config.engine_logger is configured
            assert configured is not fresh_engine_logger
            assert logging.getLogger("dcf_builder").level == logging.DEBUG

            @performance_monitor("configured_operation")
            def noop():
                return None

            noop()
            assert configured.performance_metrics[-1].operation == "configured_operation"
        finally:
            configured.close()
            logging.getLogger("dcf_builder").setLevel(logging.NOTSET)
