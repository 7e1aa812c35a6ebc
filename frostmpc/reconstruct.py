# frostmpc/reconstruct.py
"""
Offline key reconstruction: t share files -> 64-byte keypair blob
(32-byte secret scalar, little-endian || 32-byte public key = scalar * G).

Two strategies, picked by name, never guessed from the files:

  matched  FROST key packages from one dealer run, combined with the
           identifier-aware Lagrange coefficients mod L. Reproduces the group
           key; checked against it.
  generic  byte-wise Shamir over GF(2^8). Correct only for secrets that were
           split with the same generic scheme. Fed FROST shares it still
           returns 32 bytes, just the wrong ones, and nothing here can tell.
"""
import logging
import os
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import parse_strategy
from .errors import FrostError, KeyMaterialError, ReconstructionError
from .frost_core.ed25519 import L, h2b, scalar_to_bytes
from .frost_core.keystore import (
    load_json,
    load_share_file,
    write_generic_share_file,
    write_keypair_file,
)
from .frost_core.shamir import gf256_reconstruct, gf256_split
from .frost_core.threshold.eddsa import derive_public_key, reconstruct as frost_reconstruct

logger = logging.getLogger(__name__)


def keypair_blob(secret: bytes) -> bytes:
    """secret (32 bytes, LE scalar) || secret * G"""
    if len(secret) != 32:
        raise ReconstructionError(f"secret must be 32 bytes, got {len(secret)}")
    scalar = int.from_bytes(secret, "little") % L
    if scalar == 0:
        raise ReconstructionError("secret reduces to the zero scalar")
    return bytes(secret) + derive_public_key(scalar)


def split_keypair(blob: bytes) -> Tuple[int, bytes]:
    """(scalar, public key) from a 64-byte blob; the halves must agree."""
    if len(blob) != 64:
        raise KeyMaterialError(f"keypair must be 64 bytes, got {len(blob)}")
    scalar = int.from_bytes(blob[:32], "little") % L
    public = bytes(blob[32:])
    if scalar == 0 or derive_public_key(scalar) != public:
        raise KeyMaterialError("keypair public half does not match secret half")
    return scalar, public


# -----------------------------------------------------------------------------
# matched (FROST) strategy
# -----------------------------------------------------------------------------
def reconstruct_matched(share_paths: Sequence[str]) -> bytes:
    key_packages = [load_share_file(p)[1] for p in share_paths]
    scalar = frost_reconstruct(key_packages)
    public = derive_public_key(scalar)
    if public != key_packages[0].verifying_key:
        raise ReconstructionError("reconstructed key does not match the group verifying key")
    logger.info("matched reconstruction from participants %s", [kp.identifier for kp in key_packages])
    return scalar_to_bytes(scalar) + public


# -----------------------------------------------------------------------------
# generic (GF(2^8) Shamir) strategy
# -----------------------------------------------------------------------------
def parse_generic_share(doc, source: str = "<share>") -> Tuple[int, bytes]:
    """
    (index, raw bytes) from a generic share file {"index", "share_hex"}.
    A FROST share file is read as (participant_index, signing_share bytes),
    which is exactly the mix-up this strategy cannot detect.
    """
    if not isinstance(doc, Mapping):
        raise KeyMaterialError("share file must be a JSON object", source)
    try:
        if "index" in doc and "share_hex" in doc:
            index, raw = doc["index"], h2b(doc["share_hex"], "share_hex")
        elif "participant_index" in doc and isinstance(doc.get("key_package"), Mapping):
            index = doc["participant_index"]
            raw = h2b(doc["key_package"]["signing_share"], "signing_share")
        else:
            raise KeyMaterialError("not a share file", source)
    except KeyError as e:
        raise KeyMaterialError(f"share file missing {e}", source)
    except KeyMaterialError:
        raise
    except FrostError as e:
        raise KeyMaterialError(e.message, source)
    if not isinstance(index, int) or isinstance(index, bool) or not 1 <= index <= 255:
        raise KeyMaterialError("share index must be an integer in 1..255", source)
    return index, raw


def reconstruct_generic(share_paths: Sequence[str]) -> bytes:
    shares = [parse_generic_share(load_json(p), p) for p in share_paths]
    try:
        secret = gf256_reconstruct(shares)
    except ValueError as e:
        raise ReconstructionError(str(e))
    logger.info("generic reconstruction from share indices %s", [i for i, _ in shares])
    return keypair_blob(secret)


def generic_split(secret: bytes, n: int = 3, t: int = 2) -> List[Tuple[int, bytes]]:
    if len(secret) != 32:
        raise ReconstructionError(f"secret must be 32 bytes, got {len(secret)}")
    try:
        return gf256_split(secret, n=n, t=t)
    except ValueError as e:
        raise ReconstructionError(str(e))


def write_generic_shares(out_dir: str, secret: bytes, n: int = 3, t: int = 2) -> List[str]:
    os.makedirs(out_dir, exist_ok=True)
    paths = []
    for index, share in generic_split(secret, n, t):
        path = os.path.join(out_dir, f"generic{index}.json")
        write_generic_share_file(path, index, share)
        paths.append(path)
    return paths


# -----------------------------------------------------------------------------
# entry point
# -----------------------------------------------------------------------------
STRATEGIES = {
    "matched": reconstruct_matched,
    "generic": reconstruct_generic,
}


def reconstruct_keypair(
    share_paths: Sequence[str],
    strategy: Optional[str],
    out_path: Optional[str] = None,
    expected_public_key: Optional[bytes] = None,
) -> bytes:
    """
    Rebuild the keypair blob with the named strategy; optionally write it and
    compare its public half with ``expected_public_key``.
    """
    name = parse_strategy(strategy)
    if len(share_paths) < 2:
        raise ReconstructionError(f"need at least 2 share files, got {len(share_paths)}")
    blob = STRATEGIES[name](share_paths)
    if expected_public_key is not None and blob[32:] != bytes(expected_public_key):
        raise ReconstructionError(
            f"{name} reconstruction does not reproduce the expected public key",
            "shares may come from a different sharing scheme",
        )
    if out_path:
        write_keypair_file(out_path, blob)
    return blob
