"""
Logging and Monitoring for the DCF engine
Provides structured logging, performance metrics, and error tracking
"""

import logging
import logging.handlers
import json
import time
import functools
from collections import deque
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional, List, Tuple
from pathlib import Path
import threading
from dataclasses import dataclass
import traceback
import sys

ROOT_LOGGER_NAME = 'dcf_builder'

# Attributes present on every LogRecord; anything else came in through ``extra``
_RESERVED_RECORD_KEYS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'taskName', 'message', 'asctime',
])


@dataclass
class PerformanceMetric:
    """Performance metric data structure"""
    operation: str
    duration: float
    timestamp: datetime
    success: bool
    details: Dict[str, Any]
    module: str
    thread_id: str


@dataclass
class ErrorEvent:
    """Error event data structure"""
    error_type: str
    error_message: str
    stack_trace: str
    timestamp: datetime
    module: str
    operation: str
    context: Dict[str, Any]


class StructuredFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record"""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'thread_id': threading.current_thread().name,
            'process_id': record.process
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class EngineLogger:
    """Performance and error tracking for valuation runs"""

    def __init__(self, log_dir: Optional[str] = None, max_records: int = 1000,
                 console: bool = False, level: int = logging.INFO):
        self.log_dir = Path(log_dir) if log_dir else None

        self.performance_metrics: deque = deque(maxlen=max_records)
        self.error_events: deque = deque(maxlen=max_records)
        self.metrics_lock = threading.Lock()

        self.app_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.perf_logger = logging.getLogger(f'{ROOT_LOGGER_NAME}.performance')
        self.error_logger = logging.getLogger(f'{ROOT_LOGGER_NAME}.errors')
        self._handlers: List[Tuple[logging.Logger, logging.Handler]] = []

        if console or self.log_dir:
            self._setup_handlers(console, level)

        self.start_time = datetime.now(timezone.utc)

    def _setup_handlers(self, console: bool, level: int):
        """Attach console and rotating JSON file handlers"""
        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s'
        )
        json_formatter = StructuredFormatter()

        self.app_logger.setLevel(level)

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(console_formatter)
            self._attach(self.app_logger, console_handler)

        if self.log_dir is None:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / 'dcf_application.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(json_formatter)
        self._attach(self.app_logger, file_handler)

        perf_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / 'dcf_performance.log',
            maxBytes=5*1024*1024,  # 5MB
            backupCount=3
        )
        perf_handler.setLevel(logging.INFO)
        perf_handler.setFormatter(json_formatter)
        self.perf_logger.setLevel(logging.INFO)
        self._attach(self.perf_logger, perf_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / 'dcf_errors.log',
            maxBytes=5*1024*1024,  # 5MB
            backupCount=5
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(json_formatter)
        self._attach(self.error_logger, error_handler)

    def _attach(self, logger: logging.Logger, handler: logging.Handler):
        logger.addHandler(handler)
        self._handlers.append((logger, handler))

    def close(self):
        """Detach and close every handler this instance installed"""
        for logger, handler in self._handlers:
            logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def log_performance_metric(self, operation: str, duration: float,
                               success: bool, module: str, **details):
        """Log performance metric"""
        metric = PerformanceMetric(
            operation=operation,
            duration=duration,
            timestamp=datetime.now(timezone.utc),
            success=success,
            details=details,
            module=module,
            thread_id=threading.current_thread().name
        )

        with self.metrics_lock:
            self.performance_metrics.append(metric)

        self.perf_logger.info(
            f"Performance metric: {operation}",
            extra={
                'operation': operation,
                'duration_ms': duration * 1000,
                'success': success,
                'component': module,
                'details': details
            }
        )

    def log_error_event(self, error: Exception, operation: str,
                        module: str, **context):
        """Log error event with context"""
        error_event = ErrorEvent(
            error_type=type(error).__name__,
            error_message=str(error),
            stack_trace=traceback.format_exc(),
            timestamp=datetime.now(timezone.utc),
            module=module,
            operation=operation,
            context=context
        )

        with self.metrics_lock:
            self.error_events.append(error_event)

        # valuation errors are expected outcomes for bad inputs; keep them out of ERROR
        self.error_logger.warning(
            f"Error in {operation}: {error}",
            extra={
                'operation': operation,
                'component': module,
                'error_type': type(error).__name__,
                'context': context
            }
        )

    def get_performance_summary(self, last_minutes: int = 60) -> Dict[str, Any]:
        """Get performance summary for last N minutes"""
        cutoff_time = datetime.now(timezone.utc) - timedelta(minutes=last_minutes)

        with self.metrics_lock:
            recent_metrics = [
                m for m in self.performance_metrics
                if m.timestamp > cutoff_time
            ]

        if not recent_metrics:
            return {'message': 'No recent metrics available'}

        durations = [m.duration for m in recent_metrics]
        success_count = sum(1 for m in recent_metrics if m.success)

        operations = {}
        for metric in recent_metrics:
            op_data = operations.setdefault(metric.operation, {
                'count': 0,
                'total_duration': 0.0,
                'success_count': 0,
            })
            op_data['count'] += 1
            op_data['total_duration'] += metric.duration
            if metric.success:
                op_data['success_count'] += 1

        for op_data in operations.values():
            op_data['avg_duration'] = op_data['total_duration'] / op_data['count']
            op_data['success_rate'] = op_data['success_count'] / op_data['count']

        return {
            'time_window_minutes': last_minutes,
            'total_operations': len(recent_metrics),
            'success_rate': success_count / len(recent_metrics),
            'avg_duration_ms': (sum(durations) / len(durations)) * 1000,
            'operations': operations,
            'uptime_minutes': (datetime.now(timezone.utc) - self.start_time).total_seconds() / 60
        }

    def get_error_summary(self, last_minutes: int = 60) -> Dict[str, Any]:
        """Get error summary for last N minutes"""
        cutoff_time = datetime.now(timezone.utc) - timedelta(minutes=last_minutes)

        with self.metrics_lock:
            recent_errors = [
                e for e in self.error_events
                if e.timestamp > cutoff_time
            ]

        if not recent_errors:
            return {'message': 'No recent errors'}

        error_types = {}
        for error in recent_errors:
            entry = error_types.setdefault(error.error_type, {
                'count': 0,
                'operations': set()
            })
            entry['count'] += 1
            entry['operations'].add(error.operation)

        for entry in error_types.values():
            entry['operations'] = sorted(entry['operations'])

        return {
            'time_window_minutes': last_minutes,
            'total_errors': len(recent_errors),
            'error_types': error_types,
            'recent_errors': [
                {
                    'type': e.error_type,
                    'message': e.error_message,
                    'operation': e.operation,
                    'timestamp': e.timestamp.isoformat()
                }
                for e in recent_errors[-5:]
            ]
        }


def performance_monitor(operation: str, module: str = None):
    """Decorator for monitoring function performance; exceptions are re-raised"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_module = module or func.__module__

            start_time = time.perf_counter()
            success = False
            error = None

            try:
                result = func(*args, **kwargs)
                success = True
                return result
            except Exception as e:
                error = e
                engine_logger.log_error_event(
                    error=e,
                    operation=operation,
                    module=func_module,
                    function=func.__name__
                )
                raise
            finally:
                engine_logger.log_performance_metric(
                    operation=operation,
                    duration=time.perf_counter() - start_time,
                    success=success,
                    module=func_module,
                    function=func.__name__,
                    error_type=type(error).__name__ if error else None
                )

        return wrapper
    return decorator


def configure_logging(level: str = 'INFO', log_dir: Optional[str] = None,
                      console: bool = True) -> EngineLogger:
    """Install handlers and make the configured instance the active one"""
    global engine_logger
    engine_logger.close()
    engine_logger = EngineLogger(
        log_dir=log_dir,
        console=console,
        level=getattr(logging, str(level).upper(), logging.INFO)
    )
    return engine_logger


# Metrics-only instance; no handlers until configure_logging() is called
engine_logger = EngineLogger()
