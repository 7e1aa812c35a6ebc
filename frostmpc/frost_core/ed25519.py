# frost_core/ed25519.py
"""
Ed25519 scalar / point helpers on top of libsodium (PyNaCl bindings).

Scalars are ints reduced mod L, serialized as 32-byte little-endian.
Points are 32-byte compressed Edwards encodings, kept as ``bytes``.
"""
import hashlib
from typing import Optional

import nacl.bindings as sodium
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from ..errors import InputError

# Ed25519 prime-order subgroup order
L = 2**252 + 27742317777372353535851937790883648493
SCALAR_BYTES = 32
POINT_BYTES = 32
SIGNATURE_BYTES = 64


# -----------------------------------------------------------------------------
# hex
# -----------------------------------------------------------------------------
def strip0x(s: str) -> str:
    return s[2:] if s.lower().startswith("0x") else s


def h2b(h: str, what: str = "value", length: Optional[int] = None) -> bytes:
    """Decode hex (optional 0x prefix); wrong hex or length is an InputError."""
    if not isinstance(h, str):
        raise InputError(f"{what} must be a hex string")
    try:
        b = bytes.fromhex(strip0x(h.strip()))
    except ValueError:
        raise InputError(f"invalid hex for {what}")
    if length is not None and len(b) != length:
        raise InputError(f"{what} must be {length} bytes, got {len(b)}")
    return b


def b2h(b: bytes) -> str:
    return bytes(b).hex()


# -----------------------------------------------------------------------------
# scalars
# -----------------------------------------------------------------------------
def scalar_to_bytes(k: int) -> bytes:
    return (k % L).to_bytes(SCALAR_BYTES, "little")


def scalar_from_bytes(b: bytes, what: str = "scalar") -> int:
    if len(b) != SCALAR_BYTES:
        raise InputError(f"{what} must be {SCALAR_BYTES} bytes, got {len(b)}")
    k = int.from_bytes(b, "little")
    if k >= L:
        raise InputError(f"{what} is not canonical (>= L)")
    return k


def hash_to_scalar(*parts: bytes) -> int:
    h = hashlib.sha512()
    for p in parts:
        h.update(p)
    return int.from_bytes(h.digest(), "little") % L


# -----------------------------------------------------------------------------
# points
# -----------------------------------------------------------------------------
def point_is_valid(p: bytes) -> bool:
    if not isinstance(p, (bytes, bytearray)) or len(p) != POINT_BYTES:
        return False
    return bool(sodium.crypto_core_ed25519_is_valid_point(bytes(p)))


def point_from_bytes(b: bytes, what: str = "point") -> bytes:
    if len(b) != POINT_BYTES:
        raise InputError(f"{what} must be {POINT_BYTES} bytes, got {len(b)}")
    if not point_is_valid(b):
        raise InputError(f"{what} is not a valid Ed25519 point")
    return bytes(b)


def point_mul_base(k: int) -> bytes:
    # [k]B, no clamping
    return sodium.crypto_scalarmult_ed25519_base_noclamp(scalar_to_bytes(k))


# -----------------------------------------------------------------------------
# signatures
# -----------------------------------------------------------------------------
def verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Standard Ed25519 verification."""
    try:
        Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(bytes(signature), bytes(message))
        return True
    except (InvalidSignature, ValueError):
        return False
