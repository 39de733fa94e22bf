# wcdiag/utils/logger.py

import inspect
import logging
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from functools import wraps

from ..models.types import ProcessingPhase, DiagnosticsError

ROOT_LOGGER_NAME = "wcdiag"


class DiagnosticsLogger:
    """Centralized logging for the diagnostics engine."""

    _configured = False

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        level: str = "INFO",
        log_file: Optional[Path] = None
    ):
        self.logger = logging.getLogger(name)
        if not DiagnosticsLogger._configured:
            self._setup_logger(level, log_file)

    def _setup_logger(self, level: str, log_file: Optional[Path]) -> None:
        """Configure the package logger once with console and file handlers."""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(logging.DEBUG)

        # Console handler
        console = logging.StreamHandler()
        console.setLevel(getattr(logging, level.upper(), logging.INFO))
        console.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        root.addHandler(console)

        # File handler
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            root.addHandler(file_handler)

        DiagnosticsLogger._configured = True

    @staticmethod
    def set_debug(enabled: bool) -> None:
        """Toggle DEBUG output on the console handlers."""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in root.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.DEBUG if enabled else logging.INFO)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **kwargs)

    def log_phase_start(self, phase: ProcessingPhase, context: Dict[str, Any]) -> None:
        """Log the start of a processing phase."""
        self.logger.debug(f"Starting {phase.value} phase - {context or 'N/A'}")

    def log_phase_end(self, phase: ProcessingPhase, context: Dict[str, Any]) -> None:
        """Log the end of a processing phase."""
        self.logger.debug(f"Completed {phase.value} phase - {context or 'N/A'}")

    def log_error(self, error: DiagnosticsError, phase: Optional[ProcessingPhase] = None) -> None:
        """Log an engine error with its context."""
        self.logger.error(
            f"Error during {phase.value if phase else 'processing'}: "
            f"{error.message}\n"
            f"Context: {error.context}"
        )

    def create_error_log(self, e: Exception, context: Dict[str, Any]) -> None:
        """Create comprehensive error log entry."""
        self.logger.error(
            "Error Details:\n"
            f"Timestamp: {datetime.now().isoformat()}\n"
            f"Error Type: {type(e).__name__}\n"
            f"Message: {str(e)}\n"
            f"Context: {context}\n"
            f"Stacktrace:\n{traceback.format_exc()}"
        )


def log_processing_phase(phase: ProcessingPhase):
    """Decorator for logging processing phases of sync and async methods."""
    def decorator(func):
        def _context(self) -> Dict[str, Any]:
            return {"component": type(self).__name__}

        def _failed(self, e: Exception, args, kwargs) -> None:
            if isinstance(e, DiagnosticsError):
                self.logger.log_error(e, phase)
            else:
                self.logger.create_error_log(e, {
                    'phase': phase.value,
                    'function': func.__name__,
                    'args': args,
                    'kwargs': kwargs
                })

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                self.logger.log_phase_start(phase, _context(self))
                try:
                    result = await func(self, *args, **kwargs)
                    self.logger.log_phase_end(phase, _context(self))
                    return result
                except Exception as e:
                    _failed(self, e, args, kwargs)
                    raise
            return async_wrapper

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            self.logger.log_phase_start(phase, _context(self))
            try:
                result = func(self, *args, **kwargs)
                self.logger.log_phase_end(phase, _context(self))
                return result
            except Exception as e:
                _failed(self, e, args, kwargs)
                raise
        return wrapper
    return decorator
