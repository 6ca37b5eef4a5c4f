"""
Read-only proof service.

Serves published roots and per-signer proofs over HTTP, for provers that
run elsewhere:

    GET /roots/{source}/{mode}
    GET /proofs/{source}/{mode}/{fingerprint}

Nothing here writes to a store; publication is the CLI's job.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trustroot.core.settings import get_settings
from trustroot.protocol.errors import InputError, NotFoundError, TrustRootError
from trustroot.store.proof_store import ProofStore
from trustroot.version import __version__

logger = logging.getLogger(__name__)


def create_app(base_dir: Optional[Union[str, Path]] = None) -> FastAPI:
    base = Path(base_dir if base_dir is not None else get_settings().store.base_dir)
    app = FastAPI(title="trustroot proof service", version=__version__)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc), "code": exc.code.value})

    @app.exception_handler(InputError)
    async def _bad_input(request: Request, exc: InputError):
        return JSONResponse(status_code=400, content={"error": str(exc), "code": exc.code.value})

    @app.exception_handler(TrustRootError)
    async def _server_error(request: Request, exc: TrustRootError):
        logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc), "code": exc.code.value})

    @app.get("/roots/{source}/{mode}")
    def get_root(source: str, mode: str):
        store = ProofStore(base, source, mode)
        return {"source": store.source.value, **store.load_root().to_dict()}

    @app.get("/proofs/{source}/{mode}/{fingerprint}")
    def get_proof(source: str, mode: str, fingerprint: str):
        store = ProofStore(base, source, mode)
        return store.lookup(fingerprint).to_dict()

    @app.get("/health")
    def health():
        return {"status": "ok", "base_dir": str(base)}

    return app
