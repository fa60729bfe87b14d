"""
Error taxonomy for the study service.

- ConfigurationError: missing credential, fatal for the attempted operation
- NetworkError: transport/HTTP failure, surfaced verbatim, never retried
- SchemaViolationError: unparseable or incomplete generated payload
- PersistenceError: document store read/write/subscribe failure
- AuthError: sign-in failure, blocks all module operations
- TransitionError: event fired in a phase that does not accept it
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Why a generated payload could not be used."""

    EMPTY = "empty"  # No candidate / no content part / empty list
    MALFORMED_JSON = "malformed_json"
    SCHEMA_MISMATCH = "schema_mismatch"  # Valid JSON, wrong shape


class AcademyError(Exception):
    """Base class for all study service errors."""


class ConfigurationError(AcademyError):
    """Raised when required configuration (e.g. the API key) is missing."""


class NetworkError(AcademyError):
    """Raised when the generative service cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaViolationError(AcademyError):
    """Raised when a generated payload does not match the requested schema."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.SCHEMA_MISMATCH):
        super().__init__(message)
        self.kind = kind


class PersistenceError(AcademyError):
    """Raised when the document store fails."""


class AuthError(AcademyError):
    """Raised when sign-in fails or no user is available."""


class TransitionError(AcademyError):
    """Raised when an event is not allowed in the current phase."""
