"""Exception hierarchy for unwrap-or-ai.

All exceptions inherit from UnwrapOrAiError. Only UnsupportedTypeError ever
escapes to callers of the synthesis API; the other classes are raised inside
the engine and turned into a retry or the deterministic fallback.
"""


class UnwrapOrAiError(Exception):
    """Base exception for all unwrap-or-ai errors."""


class UnsupportedTypeError(UnwrapOrAiError, TypeError):
    """Raised when a target type has no structural representation."""


class ModelClientError(UnwrapOrAiError):
    """Base exception for transport-class failures of the model backend."""


class ModelTimeoutError(ModelClientError, TimeoutError):
    """Raised when the caller's deadline elapses before the backend answers."""


class ModelUnreachableError(ModelClientError):
    """Raised when the backend cannot be reached after all transport retries."""


class BackendRejectedError(ModelClientError):
    """Raised when the backend itself answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MaterializationError(UnwrapOrAiError, ValueError):
    """Raised when a structurally valid value violates a finer-grained invariant."""

    def __init__(self, message: str, path: str = "$"):
        super().__init__(message)
        self.path = path
