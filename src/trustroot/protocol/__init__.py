from .enums import ErrorCode, TrustSource
from .errors import (
    BackendError,
    EngineMismatchError,
    InputError,
    NotFoundError,
    PersistenceError,
    TreeInvariantError,
    TrustRootError,
)

__all__ = [
    "ErrorCode",
    "TrustSource",
    "TrustRootError",
    "InputError",
    "NotFoundError",
    "EngineMismatchError",
    "PersistenceError",
    "BackendError",
    "TreeInvariantError",
]
