"""Error codes and exceptions shared by the extraction pipeline.

Codes are grouped by thousands: 2xxx configuration, 3xxx extraction,
4xxx content resolution, 9xxx internal. A tier attempt that fails turns
the exception into an ``Err`` whose reason is the code's name, so the
names double as the demotion reasons shown in output.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Self


class ErrorCode(IntEnum):
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    UNPARSEABLE_SYNTAX = 3001
    UNSUPPORTED_GRAMMAR = 3002
    # Logged when a version has no content to extract; never raised.
    EMPTY_OR_MISSING_CONTENT = 3003
    EMPTY_RESULT = 3004

    CONTENT_UNAVAILABLE = 4001

    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002

    @property
    def category(self) -> str:
        return _CATEGORIES[self.value // 1000]


_CATEGORIES = {2: "config", 3: "extraction", 4: "content", 9: "internal"}


@dataclass(frozen=True, slots=True)
class DiffInsightError(Exception):
    """Structured failure carried through logs, JSON output and tier results."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def _build(cls, code: ErrorCode, message: str, *, retryable: bool = False, **details: Any) -> Self:
        return cls(code=code, message=message, retryable=retryable, details=details)

    @property
    def error_name(self) -> str:
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": int(self.code),
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{int(self.code)}] {self.error_name}: {self.message}"


class ConfigError(DiffInsightError):
    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls._build(
            ErrorCode.CONFIG_PARSE_ERROR,
            f"Failed to parse config at {path}: {reason}",
            path=path,
            reason=reason,
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls._build(
            ErrorCode.CONFIG_INVALID_VALUE,
            f"Invalid value for '{field}': {reason}",
            field=field,
            value=str(value),
            reason=reason,
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls._build(ErrorCode.CONFIG_FILE_NOT_FOUND, f"Config file not found: {path}", path=path)


class ExtractionError(DiffInsightError):
    """Raised by parsers and structural extractors.

    These never cross a tier boundary: the tier attempt functions convert
    them into ``Err`` results.
    """

    @classmethod
    def unparseable_syntax(
        cls, path: str, grammar: str, error_count: int, total_nodes: int
    ) -> "ExtractionError":
        return cls._build(
            ErrorCode.UNPARSEABLE_SYNTAX,
            f"{grammar} grammar rejected {path} ({error_count} error nodes)",
            path=path,
            grammar=grammar,
            error_count=error_count,
            total_nodes=total_nodes,
        )

    @classmethod
    def unsupported_grammar(cls, path: str, grammar: str) -> "ExtractionError":
        return cls._build(
            ErrorCode.UNSUPPORTED_GRAMMAR,
            f"No extractor registered for grammar '{grammar}' ({path})",
            path=path,
            grammar=grammar,
        )

    @classmethod
    def empty_result(cls, path: str) -> "ExtractionError":
        return cls._build(
            ErrorCode.EMPTY_RESULT, f"Extraction produced no change records for {path}", path=path
        )


class ContentError(DiffInsightError):
    """The content collaborator could not supply a version of an artifact.

    Retryable: the AST tier gives up on the artifact, but the same read may
    succeed on a later run.
    """

    @classmethod
    def unavailable(cls, path: str, version: str | None, reason: str) -> "ContentError":
        return cls._build(
            ErrorCode.CONTENT_UNAVAILABLE,
            f"Cannot read {path} at {version or 'worktree'}: {reason}",
            retryable=True,
            path=path,
            version=version,
            reason=reason,
        )


class InternalError(DiffInsightError):
    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls._build(ErrorCode.INTERNAL_ERROR, f"Internal error: {reason}", **details)

    @classmethod
    def timeout(cls, path: str, seconds: float) -> "InternalError":
        return cls._build(
            ErrorCode.INTERNAL_TIMEOUT,
            f"Analysis of {path} exceeded {seconds:g}s",
            path=path,
            timeout_sec=seconds,
        )
