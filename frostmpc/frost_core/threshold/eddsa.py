# frost_core/threshold/eddsa.py
"""
FROST(Ed25519, SHA-512) threshold signing, RFC 9591, on ``frost_lib.ed25519``.

- trusted-dealer key generation
- round 1: ``commit``  -> (SigningNonces, SigningCommitments)
- round 2: ``sign``    -> SignatureShare
- ``aggregate``        -> 64-byte Ed25519 signature (R || z); a bad share is
                          traced back to its participant with ``verify_share``
- ``reconstruct``      -> signing scalar via identifier-aware Lagrange combination

The dataclasses below are the typed, validated form used by the rest of the
package. The library speaks the frost-core serde JSON shapes, where
identifiers are 32-byte scalars; on our wire they are the 2-byte
little-endian value. Conversion happens only in this module.

Aggregated signatures are plain Ed25519 signatures: any RFC 8032 verifier
accepts them under the group verifying key.
"""
import hashlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from frost_lib import ed25519 as frost

from ...errors import InputError, InvalidShareError, ProtocolError, ReconstructionError
from ..ed25519 import (
    L,
    SIGNATURE_BYTES,
    b2h,
    h2b,
    hash_to_scalar,
    point_from_bytes,
    point_mul_base,
    scalar_from_bytes,
    scalar_to_bytes,
    verify,
)
from ..shamir import shamir_reconstruct

CIPHERSUITE = "FROST-ED25519-SHA512-v1"
CONTEXT_STRING = CIPHERSUITE.encode()
HEADER = {"version": 0, "ciphersuite": CIPHERSUITE}

MAX_IDENTIFIER = 0xFFFF


# -----------------------------------------------------------------------------
# identifiers & JSON helpers
# -----------------------------------------------------------------------------
def encode_identifier(identifier: int) -> str:
    if not 1 <= identifier <= MAX_IDENTIFIER:
        raise InputError(f"identifier {identifier} out of range 1..{MAX_IDENTIFIER}")
    return identifier.to_bytes(2, "little").hex()


def decode_identifier(h: str) -> int:
    b = h2b(h, "participant identifier")
    if len(b) < 2:
        raise InputError("identifier bytes too short", h)
    if any(b[2:]):
        raise InputError("identifier out of range", h)
    identifier = int.from_bytes(b[:2], "little")
    if identifier == 0:
        raise InputError("identifier must be non-zero", h)
    return identifier


def _check_header(d: Mapping[str, Any], what: str):
    if not isinstance(d, Mapping):
        raise InputError(f"{what} must be a JSON object")
    header = d.get("header")
    if header != HEADER:
        raise InputError(f"{what} has unsupported header", repr(header))


def _field(d: Mapping[str, Any], key: str, what: str):
    try:
        return d[key]
    except KeyError:
        raise InputError(f"{what} is missing field '{key}'")


def _scalar_field(d, key, what) -> int:
    return scalar_from_bytes(h2b(_field(d, key, what), f"{what}.{key}"), f"{what}.{key}")


def _point_field(d, key, what) -> bytes:
    return point_from_bytes(h2b(_field(d, key, what), f"{what}.{key}"), f"{what}.{key}")


# -----------------------------------------------------------------------------
# frost_lib boundary
# -----------------------------------------------------------------------------
def _lib_id(identifier: int) -> str:
    # frost-core serializes identifiers as the full scalar
    return scalar_to_bytes(identifier).hex()


def _plain(obj: Any) -> Any:
    """Library result -> plain JSON-shaped data."""
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump()
    if isinstance(obj, Mapping):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(v) for v in obj]
    return obj


# -----------------------------------------------------------------------------
# artifacts
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SigningCommitments:
    hiding: bytes
    binding: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"header": dict(HEADER), "hiding": b2h(self.hiding), "binding": b2h(self.binding)}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SigningCommitments":
        _check_header(d, "commitments")
        return cls(_point_field(d, "hiding", "commitments"), _point_field(d, "binding", "commitments"))


@dataclass(frozen=True)
class SigningNonces:
    """Secret round-1 state; ``raw`` is the library's nonce object and never leaves the signer."""

    raw: Any = field(repr=False, compare=False)
    commitments: SigningCommitments


@dataclass(frozen=True)
class SigningPackage:
    commitments: Dict[int, SigningCommitments]
    message: bytes

    def __post_init__(self):
        # frozen once built: every participant signs over the same set
        object.__setattr__(self, "commitments", MappingProxyType(dict(self.commitments)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": dict(HEADER),
            "signing_commitments": {
                encode_identifier(i): self.commitments[i].to_dict() for i in sorted(self.commitments)
            },
            "message": b2h(self.message),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SigningPackage":
        _check_header(d, "signing package")
        raw = _field(d, "signing_commitments", "signing package")
        if not isinstance(raw, Mapping) or not raw:
            raise InputError("signing package has no commitments")
        commitments = {}
        for id_hex, c in raw.items():
            identifier = decode_identifier(id_hex)
            if identifier in commitments:
                raise InputError("duplicate identifier in signing package", id_hex)
            commitments[identifier] = SigningCommitments.from_dict(c)
        message = h2b(_field(d, "message", "signing package"), "message")
        return cls(commitments, message)

    def to_lib(self):
        return frost.signing_package_new(
            {_lib_id(i): self.commitments[i].to_dict() for i in sorted(self.commitments)},
            self.message,
        )


@dataclass(frozen=True)
class SignatureShare:
    share: int = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"header": dict(HEADER), "share": b2h(scalar_to_bytes(self.share))}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SignatureShare":
        _check_header(d, "signature share")
        return cls(_scalar_field(d, "share", "signature share"))


@dataclass(frozen=True)
class KeyPackage:
    identifier: int
    signing_share: int = field(repr=False)
    verifying_share: bytes
    verifying_key: bytes
    min_signers: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": dict(HEADER),
            "identifier": encode_identifier(self.identifier),
            "signing_share": b2h(scalar_to_bytes(self.signing_share)),
            "verifying_share": b2h(self.verifying_share),
            "verifying_key": b2h(self.verifying_key),
            "min_signers": self.min_signers,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "KeyPackage":
        what = "key package"
        _check_header(d, what)
        identifier = decode_identifier(_field(d, "identifier", what))
        signing_share = _scalar_field(d, "signing_share", what)
        if signing_share == 0:
            raise InputError("key package signing_share is zero")
        verifying_share = _point_field(d, "verifying_share", what)
        verifying_key = _point_field(d, "verifying_key", what)
        min_signers = _field(d, "min_signers", what)
        if not isinstance(min_signers, int) or isinstance(min_signers, bool) or min_signers < 2:
            raise InputError("key package min_signers must be an integer >= 2")
        if point_mul_base(signing_share) != verifying_share:
            raise InputError("key package verifying_share does not match signing_share")
        return cls(identifier, signing_share, verifying_share, verifying_key, min_signers)

    def to_lib(self) -> Dict[str, Any]:
        d = self.to_dict()
        d["identifier"] = _lib_id(self.identifier)
        return d


@dataclass(frozen=True)
class PublicKeyPackage:
    verifying_shares: Dict[int, bytes]
    verifying_key: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": dict(HEADER),
            "verifying_shares": {
                encode_identifier(i): b2h(self.verifying_shares[i]) for i in sorted(self.verifying_shares)
            },
            "verifying_key": b2h(self.verifying_key),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PublicKeyPackage":
        what = "public key package"
        _check_header(d, what)
        raw = _field(d, "verifying_shares", what)
        if not isinstance(raw, Mapping):
            raise InputError("verifying_shares must be an object")
        shares = {}
        for id_hex, vs_hex in raw.items():
            identifier = decode_identifier(id_hex)
            if identifier in shares:
                raise InputError("duplicate identifier in verifying_shares", id_hex)
            shares[identifier] = point_from_bytes(h2b(vs_hex, "verifying share"), "verifying share")
        return cls(shares, _point_field(d, "verifying_key", what))

    def to_lib(self) -> Dict[str, Any]:
        d = self.to_dict()
        d["verifying_shares"] = {_lib_id(i): b2h(v) for i, v in sorted(self.verifying_shares.items())}
        return d


# -----------------------------------------------------------------------------
# key generation
# -----------------------------------------------------------------------------
def generate_with_dealer(max_signers: int = 3, min_signers: int = 2) -> Tuple[Dict[int, KeyPackage], PublicKeyPackage]:
    """Trusted dealer: split a fresh random key among identifiers 1..max_signers."""
    if not 2 <= min_signers <= max_signers <= MAX_IDENTIFIER:
        raise InputError(f"invalid threshold parameters t={min_signers} n={max_signers}")

    result = frost.keys_generate_with_dealer(max_signers, min_signers)
    key_packages = {}
    for secret_share in result.shares.values():
        kp = KeyPackage.from_dict(_plain(frost.key_package_from(secret_share)))
        key_packages[kp.identifier] = kp
    public = PublicKeyPackage.from_dict(_plain(result.pubkey_package))
    return key_packages, public


def derive_public_key(scalar: int) -> bytes:
    return point_mul_base(scalar)


# -----------------------------------------------------------------------------
# round 1
# -----------------------------------------------------------------------------
def commit(signing_share: int) -> Tuple[SigningNonces, SigningCommitments]:
    result = frost.round1_commit(b2h(scalar_to_bytes(signing_share)))
    commitments = SigningCommitments.from_dict(_plain(result.commitments))
    return SigningNonces(result.nonces, commitments), commitments


# -----------------------------------------------------------------------------
# round 2
# -----------------------------------------------------------------------------
def sign(package: SigningPackage, nonces: SigningNonces, key_package: KeyPackage) -> SignatureShare:
    """Compute this participant's signature share over ``package``."""
    if len(package.commitments) < key_package.min_signers:
        raise ProtocolError(
            f"signing package has {len(package.commitments)} commitments, need {key_package.min_signers}"
        )
    own = package.commitments.get(key_package.identifier)
    if own is None:
        raise ProtocolError("signing package has no commitment for this participant")
    if own != nonces.commitments:
        raise ProtocolError("incorrect commitment for this participant in signing package")

    try:
        share = frost.round2_sign(package.to_lib(), nonces.raw, key_package.to_lib())
    except Exception as e:
        raise ProtocolError(f"round 2 rejected: {e}")
    return SignatureShare.from_dict(_plain(share))


def verify_signature_share(
    identifier: int,
    verifying_share: bytes,
    share: SignatureShare,
    package: SigningPackage,
    verifying_key: bytes,
) -> bool:
    return bool(frost.verify_share(
        _lib_id(identifier),
        b2h(verifying_share),
        share.to_dict(),
        package.to_lib(),
        b2h(verifying_key),
    ))


def aggregate(
    package: SigningPackage,
    shares: Mapping[int, SignatureShare],
    public_key_package: PublicKeyPackage,
) -> bytes:
    """Combine shares into a 64-byte signature; an invalid share raises InvalidShareError."""
    if set(shares) != set(package.commitments):
        raise ProtocolError("signature shares do not match the signing package participants")
    unknown = [i for i in shares if i not in public_key_package.verifying_shares]
    if unknown:
        raise ProtocolError(f"no verifying share for participants {sorted(unknown)}")

    vk = public_key_package.verifying_key
    try:
        raw = frost.aggregate(
            package.to_lib(),
            {_lib_id(i): shares[i].to_dict() for i in sorted(shares)},
            public_key_package.to_lib(),
        )
    except Exception as e:
        # find who cheated
        for i in sorted(shares):
            if not verify_signature_share(i, public_key_package.verifying_shares[i], shares[i], package, vk):
                raise InvalidShareError(i)
        raise ProtocolError(f"aggregation failed: {e}")

    raw = _plain(raw)
    signature = h2b(raw, "signature", SIGNATURE_BYTES) if isinstance(raw, str) else bytes(raw)
    if not verify(vk, package.message, signature):
        raise ProtocolError("aggregated signature failed verification")
    return signature


def verify_signature(verifying_key: bytes, message: bytes, signature: bytes) -> bool:
    return verify(verifying_key, message, signature)


def threshold_sign(
    key_packages: Sequence[KeyPackage],
    message: bytes,
    public_key_package: PublicKeyPackage,
) -> bytes:
    """Run both rounds in-process over the given key packages."""
    nonces, commitments = {}, {}
    for kp in key_packages:
        if kp.identifier in nonces:
            raise InputError(f"duplicate participant {kp.identifier}")
        nonces[kp.identifier], commitments[kp.identifier] = commit(kp.signing_share)
    package = SigningPackage(commitments, message)
    shares = {kp.identifier: sign(package, nonces[kp.identifier], kp) for kp in key_packages}
    return aggregate(package, shares, public_key_package)


# -----------------------------------------------------------------------------
# reconstruction / local signing
# -----------------------------------------------------------------------------
def reconstruct(key_packages: Sequence[KeyPackage]) -> int:
    """Recover the group signing scalar from >= min_signers key packages of one dealer run."""
    if not key_packages:
        raise ReconstructionError("no key packages given")
    first = key_packages[0]
    ids: List[int] = []
    for kp in key_packages:
        if kp.verifying_key != first.verifying_key:
            raise ReconstructionError("key packages belong to different groups")
        if kp.identifier in ids:
            raise ReconstructionError(f"duplicate participant {kp.identifier}")
        ids.append(kp.identifier)
    if len(ids) < first.min_signers:
        raise ReconstructionError(f"need {first.min_signers} key packages, got {len(ids)}")
    return shamir_reconstruct([(kp.identifier, kp.signing_share) for kp in key_packages], p=L)


def sign_with_scalar(scalar: int, message: bytes) -> bytes:
    """Ed25519 signature from a raw signing scalar (no seed); nonce derived from scalar and message."""
    scalar %= L
    public = point_mul_base(scalar)
    prefix = hashlib.sha512(CONTEXT_STRING + b"local-nonce" + scalar_to_bytes(scalar)).digest()[32:]
    r = hash_to_scalar(prefix, message)
    R = point_mul_base(r)
    k = hash_to_scalar(R, public, message)
    return R + scalar_to_bytes((r + k * scalar) % L)
