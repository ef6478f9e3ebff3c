from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    NO_SCHEMA_SOURCE = "NO_SCHEMA_SOURCE"
    INVALID_CONFIG = "INVALID_CONFIG"
    SCHEMA_READ_FAILED = "SCHEMA_READ_FAILED"
    SCHEMA_PARSE_FAILED = "SCHEMA_PARSE_FAILED"
    SCHEMA_INVALID = "SCHEMA_INVALID"
    DIRECTIVE_CONFLICT = "DIRECTIVE_CONFLICT"
    ENDPOINT_REQUEST_FAILED = "ENDPOINT_REQUEST_FAILED"
    ENDPOINT_BAD_STATUS = "ENDPOINT_BAD_STATUS"
    ENDPOINT_BAD_PAYLOAD = "ENDPOINT_BAD_PAYLOAD"


class SchemaCacheError(Exception):
    """Base for every expected failure raised by the cache layer.

    Carries a machine-readable code and a human suggestion so the host
    language server can surface it as a diagnostic without inspecting the
    exception type.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class ConfigError(SchemaCacheError):
    """The project is unknown or has no schema source. Never fatal."""


class BuildError(SchemaCacheError):
    """Schema text could not be read, parsed or validated."""


class DirectiveConflictError(BuildError):
    """A custom directive redefines a directive already in the schema."""


class EndpointError(SchemaCacheError):
    """Introspection request failed. Callers fall back to disk when they can."""
