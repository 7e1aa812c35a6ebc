# frostmpc/node_sign.py
# -*- coding: utf-8 -*-
"""
FROST signer node. Holds one key share and serves the two signing rounds:

- POST /nonce {"message": "<hex>"}
    -> {"participant_id": "0100", "commitments": {...}}
  Reserves a single-use nonce for the message. Asking again before /sign
  returns the same commitments.
- POST /sign {"package": {...signing package...}}
    -> {"share": {...}}
  Consumes the reserved nonce for package.message. No reserved nonce: 400
  "nonce not found". Package rejected by FROST: 500.
- GET /health, GET /public-key (public material only)

Nonces live in process memory only. A restart drops pending reservations and
the coordinator has to start over from round 1.

Run (three nodes):
  frostmpc daemon frost-artifacts/s1.json 127.0.0.1:3001
  frostmpc daemon frost-artifacts/s2.json 127.0.0.1:3002
  frostmpc daemon frost-artifacts/s3.json 127.0.0.1:3003
or
  FROST_SHARE_PATH=frost-artifacts/s1.json uvicorn frostmpc.node_sign:app_from_env --factory --port 3001
"""
import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .errors import FrostError, ProtocolError
from .frost_core.ed25519 import b2h, h2b
from .frost_core.keystore import load_share_file
from .frost_core.network import NONCE_NOT_FOUND
from .frost_core.threshold.eddsa import (
    KeyPackage,
    SigningCommitments,
    SigningNonces,
    SigningPackage,
    commit,
    encode_identifier,
    sign,
)

logger = logging.getLogger(__name__)


class NonceStore:
    """
    message hex -> (nonces, commitments), behind one lock.

    Only lookups, inserts and removals happen under the lock. Requests for
    different messages still queue on it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[SigningNonces, SigningCommitments]] = {}

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def reserve(
        self,
        message_id: str,
        factory: Callable[[], Tuple[SigningNonces, SigningCommitments]],
    ) -> SigningCommitments:
        with self._lock:
            entry = self._entries.get(message_id)
        if entry is not None:
            return entry[1]
        fresh = factory()
        with self._lock:
            # a concurrent request may have won; its entry is the one published
            entry = self._entries.setdefault(message_id, fresh)
        return entry[1]

    def take(self, message_id: str) -> Optional[SigningNonces]:
        with self._lock:
            entry = self._entries.pop(message_id, None)
        return entry[0] if entry is not None else None


# -----------------------------------------------------------------------------
# request / response models
# -----------------------------------------------------------------------------
class NonceReq(BaseModel):
    message: str  # hex


class NonceResp(BaseModel):
    participant_id: str
    commitments: Dict[str, Any]


class SignReq(BaseModel):
    package: Dict[str, Any]


class SignResp(BaseModel):
    share: Dict[str, Any]


def create_app(key_package: KeyPackage, store: Optional[NonceStore] = None) -> FastAPI:
    participant_id = encode_identifier(key_package.identifier)
    nonces = store if store is not None else NonceStore()

    app = FastAPI(title=f"FROST Signer #{key_package.identifier}")
    app.state.nonces = nonces
    app.state.key_package = key_package

    @app.get("/health")
    def health():
        return {"ok": True, "participant_id": participant_id, "pending_nonces": len(nonces)}

    @app.get("/public-key")
    def public_key():
        return {
            "participant_id": participant_id,
            "verifying_share": b2h(key_package.verifying_share),
            "verifying_key": b2h(key_package.verifying_key),
        }

    @app.post("/nonce", response_model=NonceResp)
    def request_commitment(req: NonceReq):
        try:
            message = h2b(req.message, "message")
        except FrostError:
            raise HTTPException(status_code=400, detail="invalid hex")

        commitments = nonces.reserve(message.hex(), lambda: commit(key_package.signing_share))
        logger.info("participant %s: commitment for message %s…", participant_id, message.hex()[:16])
        return NonceResp(participant_id=participant_id, commitments=commitments.to_dict())

    @app.post("/sign", response_model=SignResp)
    def request_signature_share(req: SignReq):
        try:
            package = SigningPackage.from_dict(req.package)
        except FrostError as e:
            raise HTTPException(status_code=400, detail=f"invalid signing package: {e.message}")

        # removed before signing: whatever happens next, this nonce is spent
        signing_nonces = nonces.take(package.message.hex())
        if signing_nonces is None:
            logger.warning("participant %s: sign without reserved nonce", participant_id)
            raise HTTPException(status_code=400, detail=NONCE_NOT_FOUND)

        try:
            share = sign(package, signing_nonces, key_package)
        except ProtocolError as e:
            logger.error("participant %s: sign error: %s", participant_id, e.message)
            raise HTTPException(status_code=500, detail=f"sign error: {e.message}")
        logger.info("participant %s: signature share for message %s…", participant_id, package.message.hex()[:16])
        return SignResp(share=share.to_dict())

    return app


def app_from_env() -> FastAPI:
    """uvicorn factory: share file from FROST_SHARE_PATH."""
    path = os.getenv("FROST_SHARE_PATH")
    if not path:
        raise RuntimeError("env FROST_SHARE_PATH is required")
    _, key_package = load_share_file(path)
    return create_app(key_package)


def serve(share_path: str, host: str, port: int, log_level: str = "info"):
    import uvicorn

    _, key_package = load_share_file(share_path)
    logger.info("signer %d listening on %s:%d", key_package.identifier, host, port)
    uvicorn.run(create_app(key_package), host=host, port=port, log_level=log_level.lower())
