"""
Proving backend handle.

The proof system (Pedersen hashing, proof verification) lives outside this
package. Callers hold an explicit handle, initialise it before use and
destroy it afterwards, usually through the context manager:

    with BarretenbergBackend(settings.backend) as backend:
        engine = create_engine("pedersen", backend)
        ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from trustroot.protocol.errors import BackendError

logger = logging.getLogger(__name__)


class ProvingBackend(ABC):
    """
    Lifecycle-managed access to the external proving system.

    Subclasses implement _start/_stop and the operations; the base class
    tracks readiness and refuses calls on an uninitialised handle.
    """

    name: str = "backend"

    def __init__(self) -> None:
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def init(self) -> "ProvingBackend":
        if self._ready:
            return self
        self._start()
        self._ready = True
        logger.debug("%s backend initialised", self.name)
        return self

    def destroy(self) -> None:
        if not self._ready:
            return
        try:
            self._stop()
        finally:
            self._ready = False
            logger.debug("%s backend destroyed", self.name)

    def __enter__(self) -> "ProvingBackend":
        return self.init()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()

    def _require_ready(self) -> None:
        if not self._ready:
            raise BackendError(f"{self.name} backend is not initialised; call init() first")

    def _start(self) -> None:
        pass

    def _stop(self) -> None:
        pass

    @abstractmethod
    def pedersen_hash(self, inputs: Sequence[int], hash_index: int = 0) -> int:
        """Pedersen hash of field elements with a generator offset (hash index)."""
        raise NotImplementedError

    @abstractmethod
    def verify_proof(
        self,
        public_inputs: Sequence[str],
        proof: bytes,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Verify proof bytes against public inputs.

        Returns True only on explicit success. Raises BackendError when the
        verifier cannot run (missing binary, timeout).
        """
        raise NotImplementedError
