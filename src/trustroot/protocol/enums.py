from enum import Enum


class ErrorCode(str, Enum):
    INPUT_ERROR = "input_error"
    NOT_FOUND = "not_found"
    ENGINE_MISMATCH = "engine_mismatch"
    PERSISTENCE_ERROR = "persistence_error"
    BACKEND_ERROR = "backend_error"
    INTERNAL_ERROR = "internal_error"


class TrustSource(str, Enum):
    """Origin of a trust list. Each source gets its own proof store."""

    LOCAL = "local"
    EU = "eu"
