from trustroot.backend.barretenberg import BarretenbergBackend
from trustroot.backend.base import ProvingBackend

__all__ = ["BarretenbergBackend", "ProvingBackend"]
