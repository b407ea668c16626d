"""
Unified error handling for saltmaster commands.

Exit Codes:
- 0: Success
- 2: Blocked (another run holds the stack lock)
- 10: Configuration error
- 11: Provider error (remote call failed)
- 12: Validation error
- 13: Dependency unresolved (internal ordering defect)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    BLOCKED = 2
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    DEPENDENCY_UNRESOLVED = 13
    UNKNOWN_ERROR = 127


class SaltMasterError(Exception):
    """Base exception for saltmaster errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SaltMasterError):
    """Raised when a required setting is missing or malformed."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(SaltMasterError):
    """Raised when a remote provider call fails.

    ``step`` is filled in by the scheduler with the name of the pipeline
    step that issued the call, ``action`` with its human description
    (e.g. "address reservation").
    """

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        provider: str | None = None,
    ):
        super().__init__(message, details)
        self.provider = provider
        self.step: str | None = None
        self.action: str | None = None

    def annotate(self, step: str, action: str) -> None:
        # First annotation wins; a re-raised error keeps its origin.
        if self.step is None:
            self.step = step
            self.action = action
            self.details.setdefault("step", step)

    def __str__(self) -> str:
        if self.action:
            return f"{self.action} failed: {self.message}"
        return self.message


class ValidationError(SaltMasterError):
    """Raised for invalid pipeline definitions (unknown or cyclic steps)."""

    exit_code = ExitCode.VALIDATION_ERROR


class StackLockedError(SaltMasterError):
    """Raised when another run already holds the lock for a stack."""

    exit_code = ExitCode.BLOCKED


class DependencyUnresolved(SaltMasterError):
    """Raised when a value is read before the step producing it resolved."""

    exit_code = ExitCode.DEPENDENCY_UNRESOLVED
    show_traceback = True


F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that converts exceptions to exit codes.

    Usage:
        @main_with_error_handling()
        def up_command() -> int:
            ...
            return 0

    Exit codes:
        - SaltMasterError subclasses: the error's exit_code
        - KeyboardInterrupt: 130
        - Other exceptions: 127
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except SaltMasterError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator
