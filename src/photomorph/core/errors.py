"""Exception hierarchy for Photomorph.

Every error raised by the core derives from :class:`PhotomorphError` and maps
onto one HTTP status code at the API boundary:

=====================  ======  ===========================================
Exception              Status  Raised when
=====================  ======  ===========================================
``ValidationError``    400     Bad input (size, type, length, missing field)
``NotFoundError``      404     A referenced id does not exist
``GenerationError``    500     The external provider failed
``StorageError``       500     A durable write (database or blob) failed
=====================  ======  ===========================================

None of these are retried automatically.
"""

from __future__ import annotations

from enum import Enum


class PhotomorphError(Exception):
    """Base class for all Photomorph errors.

    The message is intended to be displayed directly to the user.
    """

    status_code: int = 500


class ValidationError(PhotomorphError):
    """User-friendly validation error for rejected input."""

    status_code = 400


class NotFoundError(PhotomorphError):
    """A theme or record id could not be resolved."""

    status_code = 404

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class GenerationCause(str, Enum):
    """Why a provider call failed."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    POLICY_VIOLATION = "policy_violation"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UNKNOWN = "unknown"


_CAUSE_MESSAGES = {
    GenerationCause.UNAUTHORIZED: "The image provider rejected our credentials",
    GenerationCause.RATE_LIMITED: "The image provider is rate limiting requests, try again later",
    GenerationCause.POLICY_VIOLATION: "The prompt was rejected by the provider's content policy",
    GenerationCause.UPSTREAM_UNAVAILABLE: "The image provider is currently unavailable",
    GenerationCause.UNKNOWN: "Failed to generate image",
}


class GenerationError(PhotomorphError):
    """The external generation provider failed.

    Attributes:
        cause: Category of the failure.
    """

    status_code = 500

    def __init__(self, cause: GenerationCause, message: str | None = None) -> None:
        self.cause = cause
        super().__init__(message or _CAUSE_MESSAGES[cause])


class StorageError(PhotomorphError):
    """Persisting a record or blob failed."""

    status_code = 500
