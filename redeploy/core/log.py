"""Structured logging system with JSON output and rich terminal formatting."""

import logging
from typing import Any, Dict, Optional, Union, Protocol
from pathlib import Path

from .logger_factory import IsolatedLogManager


class Logger(Protocol):
    """Protocol for logger instances to enable dependency injection."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""


class LogManager:
    """Central logging configuration and management.

    Thin facade over an IsolatedLogManager namespaced as ``redeploy`` so the
    tool never installs handlers on the root logger.
    """

    def __init__(self) -> None:
        self._manager = IsolatedLogManager("redeploy")
        self._configured = False

    def configure(
        self,
        level: Union[int, str] = logging.INFO,
        log_file: Optional[Path] = None,
        enable_json: bool = True,
        enable_console: bool = True,
        console_level: Optional[Union[int, str]] = None,
    ) -> None:
        """Configure logging system once per process."""
        if self._configured:
            return

        self._manager.configure(
            level=level,
            log_file=log_file,
            enable_json=enable_json,
            enable_console=enable_console,
            console_level=console_level,
        )
        self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger instance."""
        return self._manager.create_logger(name)

    @property
    def context_manager(self) -> IsolatedLogManager:
        return self._manager

    def shutdown(self) -> None:
        """Shutdown logging system."""
        self._manager.shutdown()
        self._configured = False

    def reset_configuration(self) -> None:
        """Reset configuration to allow reconfiguration.

        This is useful for test isolation where different tests
        might need different logging configurations.
        """
        self._configured = False
        self._manager.reset()


# Global log manager instance
_log_manager = LogManager()


def configure_logging(**kwargs: Any) -> None:
    """Configure the global logging system."""
    _log_manager.configure(**kwargs)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return _log_manager.get_logger(name)


def reset_logging() -> None:
    """Reset logging configuration to allow reconfiguration."""
    _log_manager.reset_configuration()


def log_process_event(
    logger: Logger, event: str, pid: Optional[int] = None, **kwargs: Any
) -> None:
    """Log a process-related event."""
    extra: Dict[str, Any] = {"event_type": "process", "process_event": event}
    if pid is not None:
        extra["pid"] = pid
    extra.update(kwargs)
    if pid is not None:
        logger.info("Process %s %s", pid, event, extra=extra)
    else:
        logger.info("Process %s", event, extra=extra)


def log_stage_event(
    logger: Logger, stage: str, event: str, **kwargs: Any
) -> None:
    """Log a deployment stage transition (e.g. ``stop`` / ``begin``)."""
    extra: Dict[str, Any] = {
        "event_type": "stage",
        "stage": stage,
        "stage_event": event,
    }
    extra.update(kwargs)
    logger.info("Stage %s %s", stage, event, extra=extra)


def log_artifact_event(
    logger: Logger, event: str, artifact: Optional[str] = None, **kwargs: Any
) -> None:
    """Log an artifact-related event."""
    extra: Dict[str, Any] = {"event_type": "artifact", "artifact_event": event}
    if artifact is not None:
        extra["artifact"] = artifact
    extra.update(kwargs)
    logger.info("Artifact %s %s", artifact, event, extra=extra)


# Context management shortcuts
def set_log_context(**kwargs: Any) -> None:
    """Set logging context for current thread."""
    _log_manager.context_manager.set_context(**kwargs)


def get_log_context() -> Dict[str, Any]:
    """Get current logging context."""
    return _log_manager.context_manager.get_context()


def clear_log_context() -> None:
    """Clear current logging context."""
    _log_manager.context_manager.clear_context()


def log_context(**kwargs: Any) -> Any:
    """Context manager for temporary logging context."""
    return _log_manager.context_manager.context(**kwargs)
