from typing import Optional

from .enums import ErrorCode


class TrustRootError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class InputError(TrustRootError):
    """Raised for invalid leaf sets, malformed hex and out-of-range indices."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INPUT_ERROR)


class NotFoundError(TrustRootError):
    """Raised when a fingerprint (or a published root) is not in a store."""

    def __init__(self, message: str, fingerprint: Optional[str] = None):
        super().__init__(message, ErrorCode.NOT_FOUND)
        self.fingerprint = fingerprint


class EngineMismatchError(TrustRootError):
    """Raised when a hash engine fails its golden-value self-check."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ENGINE_MISMATCH)


class PersistenceError(TrustRootError, OSError):
    """Raised when writing to a proof store fails. Carries the failing path."""

    def __init__(self, message: str, path: Optional[str] = None):
        TrustRootError.__init__(self, message, ErrorCode.PERSISTENCE_ERROR)
        self.path = path

    def __str__(self) -> str:
        message = self.args[0] if self.args else ""
        return f"{message} ({self.path})" if self.path else message


class BackendError(TrustRootError):
    """Raised when the proving backend is unavailable or misbehaves."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.BACKEND_ERROR)


class TreeInvariantError(TrustRootError):
    """Raised when a tree does not have the shape the builder guarantees."""
