# frost_core/network.py
"""Client side of the signer wire protocol (JSON over HTTP)."""
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from ..errors import FrostError, NonceNotFoundError, SignerError
from .ed25519 import h2b, point_from_bytes
from .threshold.eddsa import (
    SignatureShare,
    SigningCommitments,
    SigningPackage,
    decode_identifier,
)

logger = logging.getLogger(__name__)

NONCE_NOT_FOUND = "nonce not found"


class SignerClient:
    """One remote signer daemon, addressed by its base URL."""

    def __init__(self, base_url: str, session=None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        # anything with requests' post/get signature works (tests pass TestClient routers)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def __repr__(self):
        return f"SignerClient({self.base_url!r})"

    def _call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if method == "GET":
                resp = self.session.get(url, timeout=self.timeout)
            else:
                resp = self.session.post(url, json=body, timeout=self.timeout)
        except requests.Timeout:
            raise SignerError(self.base_url, f"timed out after {self.timeout}s on {path}")
        except requests.RequestException as e:
            raise SignerError(self.base_url, f"request to {path} failed: {e}")

        if resp.status_code >= 400:
            detail = _error_detail(resp)
            if resp.status_code == 400 and detail == NONCE_NOT_FOUND:
                raise NonceNotFoundError(self.base_url)
            raise SignerError(self.base_url, f"{path} returned HTTP {resp.status_code}: {detail}")
        try:
            data = resp.json()
        except ValueError:
            raise SignerError(self.base_url, f"{path} returned a non-JSON body")
        if not isinstance(data, dict):
            raise SignerError(self.base_url, f"{path} returned unexpected JSON")
        return data

    def request_commitment(self, message: bytes) -> Tuple[int, SigningCommitments]:
        """Round 1. Idempotent per message on the signer side."""
        data = self._call("POST", "/nonce", {"message": message.hex()})
        try:
            identifier = decode_identifier(data["participant_id"])
            commitments = SigningCommitments.from_dict(data["commitments"])
        except KeyError as e:
            raise SignerError(self.base_url, f"/nonce response missing {e}")
        except FrostError as e:
            raise SignerError(self.base_url, f"bad /nonce response: {e.message}")
        logger.debug("commitment from %s (participant %d)", self.base_url, identifier)
        return identifier, commitments

    def request_signature_share(self, package: SigningPackage) -> SignatureShare:
        """Round 2. Consumes the signer's nonce for ``package.message``."""
        data = self._call("POST", "/sign", {"package": package.to_dict()})
        try:
            return SignatureShare.from_dict(data["share"])
        except KeyError as e:
            raise SignerError(self.base_url, f"/sign response missing {e}")
        except FrostError as e:
            raise SignerError(self.base_url, f"bad /sign response: {e.message}")

    def public_key(self) -> Tuple[int, bytes, bytes]:
        """(identifier, verifying share, group verifying key) as held by the signer."""
        data = self._call("GET", "/public-key")
        try:
            identifier = decode_identifier(data["participant_id"])
            verifying_share = point_from_bytes(h2b(data["verifying_share"], "verifying_share"))
            verifying_key = point_from_bytes(h2b(data["verifying_key"], "verifying_key"))
        except KeyError as e:
            raise SignerError(self.base_url, f"/public-key response missing {e}")
        except FrostError as e:
            raise SignerError(self.base_url, f"bad /public-key response: {e.message}")
        return identifier, verifying_share, verifying_key


def _error_detail(resp) -> str:
    # FastAPI puts HTTPException text under "detail"
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(data)
