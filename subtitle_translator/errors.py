"""Exception hierarchy shared by the subtitle pipeline components.

Every error carries a short ``kind`` tag so stage failures and chunk results
can be reported uniformly without inspecting exception classes.
"""

from __future__ import annotations

from typing import Sequence, Tuple


class SubtitleTranslatorError(RuntimeError):
    """Base error for the subtitle translation pipeline."""

    kind = "error"


class InputMissingError(SubtitleTranslatorError, FileNotFoundError):
    """Raised when a stage input file does not exist."""

    kind = "input_missing"


class ExternalToolError(SubtitleTranslatorError):
    """Raised when an external executable fails or times out."""

    kind = "external_tool_failure"


class CommandExecutionError(ExternalToolError):
    """Raised by the command runner when a subprocess fails, times out or cannot start."""

    def __init__(
        self,
        command: Sequence[str] | str,
        *,
        returncode: int | None = None,
        output: str | None = None,
        cause: BaseException | None = None,
        timeout: bool = False,
        timeout_seconds: float | None = None,
    ) -> None:
        self.command: Tuple[str, ...] = (
            (command,) if isinstance(command, str) else tuple(str(part) for part in command)
        )
        self.returncode = returncode
        self.output = output
        self.cause = cause
        self.timeout = timeout
        self.timeout_seconds = timeout_seconds

        if timeout:
            reason = f"timed out after {timeout_seconds:g}s" if timeout_seconds else "timed out"
        elif returncode is not None:
            reason = f"return code {returncode}"
        elif cause is not None:
            reason = f"{cause.__class__.__name__}: {cause}"
        else:
            reason = "unknown failure"
        program = self.command[0] if self.command else "<empty>"
        super().__init__(f"{program} failed ({reason})")


class APIFailureError(SubtitleTranslatorError):
    """Raised when the text-generation API call fails or returns nothing usable."""

    kind = "api_failure"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StructuralMismatchError(SubtitleTranslatorError):
    """Raised when a translated chunk does not match the source block count."""

    kind = "structural_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Translated block count mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class SubtitleValidationError(SubtitleTranslatorError):
    """Raised when a final subtitle entry violates the SRT format."""

    kind = "validation_failure"


class InsufficientFundsError(SubtitleTranslatorError):
    """Raised when a user balance cannot cover a debit."""

    kind = "insufficient_funds"


class NotFoundError(SubtitleTranslatorError, KeyError):
    """Raised when a task or user record does not exist."""

    kind = "not_found"

    def __str__(self) -> str:  # KeyError quotes its message otherwise
        return str(self.args[0]) if self.args else "not found"


class TranslationChunkError(SubtitleTranslatorError):
    """Raised when a chunk exhausted its retries."""

    kind = "translation_failure"

    def __init__(self, message: str, *, chunk_index: int, cause_kind: str) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.cause_kind = cause_kind


class TaskTransitionError(SubtitleTranslatorError, ValueError):
    """Raised when an invalid status transition is requested for a task."""

    kind = "invalid_transition"


class StageFailedError(SubtitleTranslatorError):
    """Raised by the pipeline after a stage failure has been persisted."""

    kind = "stage_failed"

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


__all__ = [
    "APIFailureError",
    "CommandExecutionError",
    "ExternalToolError",
    "InputMissingError",
    "InsufficientFundsError",
    "NotFoundError",
    "StageFailedError",
    "StructuralMismatchError",
    "SubtitleTranslatorError",
    "SubtitleValidationError",
    "TaskTransitionError",
    "TranslationChunkError",
]
