"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the CLI and the library API."""

    CONFIG_PARSE = "E_CONFIG_PARSE"
    UNKNOWN_TASK = "E_UNKNOWN_TASK"
    SELF_REFERENCE = "E_SELF_REFERENCE"
    DEPENDENCY_CYCLE = "E_DEPENDENCY_CYCLE"
    LOCK_PARSE = "E_LOCK_PARSE"
    MISSING_INPUT = "E_MISSING_INPUT"
    BUILD_TOOL = "E_BUILD_TOOL"
    UNEXPECTED_BUILD_SUCCESS = "E_UNEXPECTED_BUILD_SUCCESS"
    HASH_MISMATCH_PARSE = "E_HASH_MISMATCH_PARSE"
    BUILD_RESULT_MALFORMED = "E_BUILD_RESULT_MALFORMED"
    SCRIPT_EXECUTION = "E_SCRIPT_EXECUTION"
    MAIN_BUILD_FAILED = "E_MAIN_BUILD_FAILED"
    TEST_BUILD_FAILED = "E_TEST_BUILD_FAILED"
    FILE_IO = "E_FILE_IO"
    PUBLISH = "E_PUBLISH"
    CREDENTIALS = "E_CREDENTIALS"


class FreshenError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    default_code: ErrorCode | None = None

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        resolved = code or self.default_code
        if resolved is None:
            raise TypeError(f"{type(self).__name__} requires an error code.")
        self.message = message
        self.code = resolved.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def with_context(self, **context: str) -> FreshenError:
        """Attach context without overwriting keys set closer to the failure."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigParseError(FreshenError):
    default_code = ErrorCode.CONFIG_PARSE


class UnknownTaskError(FreshenError):
    default_code = ErrorCode.UNKNOWN_TASK


class SelfReferenceError(FreshenError):
    default_code = ErrorCode.SELF_REFERENCE


class DependencyCycleError(FreshenError):
    default_code = ErrorCode.DEPENDENCY_CYCLE


class LockParseError(FreshenError):
    default_code = ErrorCode.LOCK_PARSE


class MissingInputError(FreshenError):
    default_code = ErrorCode.MISSING_INPUT


class BuildToolError(FreshenError):
    """The build tool failed where failure was not expected."""

    default_code = ErrorCode.BUILD_TOOL


class UnexpectedBuildSuccessError(FreshenError):
    """A derived-hash probe build succeeded instead of reporting a mismatch."""

    default_code = ErrorCode.UNEXPECTED_BUILD_SUCCESS


class HashMismatchParseError(FreshenError):
    default_code = ErrorCode.HASH_MISMATCH_PARSE


class BuildResultMalformed(FreshenError):
    default_code = ErrorCode.BUILD_RESULT_MALFORMED


class ScriptExecutionError(FreshenError):
    default_code = ErrorCode.SCRIPT_EXECUTION


class MainBuildFailed(FreshenError):
    default_code = ErrorCode.MAIN_BUILD_FAILED


class TestBuildFailed(FreshenError):
    __test__ = False

    default_code = ErrorCode.TEST_BUILD_FAILED


class FileIoError(FreshenError):
    default_code = ErrorCode.FILE_IO


class WorkingCopyError(FileIoError):
    """The scratch working copy could not be prepared or inspected."""


class PublishError(FreshenError):
    default_code = ErrorCode.PUBLISH


class CredentialsError(FreshenError):
    default_code = ErrorCode.CREDENTIALS


__all__ = [
    "BuildResultMalformed",
    "BuildToolError",
    "ConfigParseError",
    "CredentialsError",
    "DependencyCycleError",
    "ErrorCode",
    "FileIoError",
    "FreshenError",
    "HashMismatchParseError",
    "LockParseError",
    "MainBuildFailed",
    "MissingInputError",
    "PublishError",
    "ScriptExecutionError",
    "SelfReferenceError",
    "TestBuildFailed",
    "UnexpectedBuildSuccessError",
    "UnknownTaskError",
    "WorkingCopyError",
]
