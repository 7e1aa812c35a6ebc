# frost_core/keystore.py
"""
On-disk key material.

  s{i}.json               {"participant_index": i, "key_package": KeyPackage}
  group_public_key.json   PublicKeyPackage + address_base58 + public_key_hex
  generic share file      {"index": i, "share_hex": "..."}
  keypair file            JSON array of 64 ints: secret scalar (LE) || public key

Everything here is written once (key generation / reconstruction) and read at
tool startup; any problem is a KeyMaterialError.
"""
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Tuple

import base58

from ..errors import FrostError, KeyMaterialError
from .ed25519 import POINT_BYTES, b2h, h2b
from .threshold.eddsa import KeyPackage, PublicKeyPackage

logger = logging.getLogger(__name__)

GROUP_KEY_FILENAME = "group_public_key.json"
KEYPAIR_BYTES = 64


def share_filename(index: int) -> str:
    return f"s{index}.json"


def address_of(verifying_key: bytes) -> str:
    """Base58 account address of a 32-byte public key."""
    return base58.b58encode(bytes(verifying_key)).decode("ascii")


def public_key_from_address(address: str) -> bytes:
    try:
        pk = base58.b58decode(address.strip())
    except ValueError:
        raise KeyMaterialError("invalid base58 address", address)
    if len(pk) != POINT_BYTES:
        raise KeyMaterialError(f"address must decode to {POINT_BYTES} bytes, got {len(pk)}", address)
    return pk


# -----------------------------------------------------------------------------
# raw JSON
# -----------------------------------------------------------------------------
def load_json(path: str) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        raise KeyMaterialError("file not found", path)
    except json.JSONDecodeError as e:
        raise KeyMaterialError(f"invalid JSON: {e}", path)
    except UnicodeDecodeError:
        raise KeyMaterialError("not a text file", path)
    except OSError as e:
        raise KeyMaterialError(f"cannot read file: {e}", path)


def _write_json(path: str, doc: Any):
    with open(path, "w") as f:
        json.dump(doc, f, indent=2)
        f.write("\n")


# -----------------------------------------------------------------------------
# share files
# -----------------------------------------------------------------------------
def share_document(key_package: KeyPackage) -> Dict[str, Any]:
    return {"participant_index": key_package.identifier, "key_package": key_package.to_dict()}


def parse_share_document(doc: Any, source: str = "<share>") -> Tuple[int, KeyPackage]:
    if not isinstance(doc, Mapping):
        raise KeyMaterialError("share file must be a JSON object", source)
    index = doc.get("participant_index")
    if not isinstance(index, int) or isinstance(index, bool) or not 0 < index <= 0xFFFF:
        raise KeyMaterialError("participant_index must be an integer in 1..65535", source)
    if "key_package" not in doc:
        raise KeyMaterialError("share file has no key_package", source)
    try:
        key_package = KeyPackage.from_dict(doc["key_package"])
    except FrostError as e:
        raise KeyMaterialError(f"corrupt key package: {e.message}", source)
    if key_package.identifier != index:
        raise KeyMaterialError(
            f"participant_index {index} does not match key package identifier {key_package.identifier}", source
        )
    return index, key_package


def load_share_file(path: str) -> Tuple[int, KeyPackage]:
    index, key_package = parse_share_document(load_json(path), path)
    logger.debug("loaded share %d from %s", index, path)
    return index, key_package


def write_share_file(path: str, key_package: KeyPackage):
    _write_json(path, share_document(key_package))


# -----------------------------------------------------------------------------
# group public key file
# -----------------------------------------------------------------------------
def group_key_document(public_key_package: PublicKeyPackage) -> Dict[str, Any]:
    doc = public_key_package.to_dict()
    doc["address_base58"] = address_of(public_key_package.verifying_key)
    doc["public_key_hex"] = b2h(public_key_package.verifying_key)
    return doc


def parse_group_key_document(doc: Any, source: str = "<group key>") -> PublicKeyPackage:
    if not isinstance(doc, Mapping):
        raise KeyMaterialError("group key file must be a JSON object", source)
    try:
        package = PublicKeyPackage.from_dict(doc)
    except FrostError as e:
        raise KeyMaterialError(f"corrupt public key package: {e.message}", source)
    if len(package.verifying_shares) < 2:
        raise KeyMaterialError("group key file lists fewer than 2 verifying shares", source)

    # convenience fields are optional but must agree with the verifying key
    if "public_key_hex" in doc:
        try:
            pk = h2b(doc["public_key_hex"], "public_key_hex")
        except FrostError:
            pk = None
        if pk != package.verifying_key:
            raise KeyMaterialError("public_key_hex does not match verifying_key", source)
    if "address_base58" in doc and doc["address_base58"] != address_of(package.verifying_key):
        raise KeyMaterialError("address_base58 does not match verifying_key", source)
    return package


def load_group_key_file(path: str) -> PublicKeyPackage:
    return parse_group_key_document(load_json(path), path)


def write_group_key_file(path: str, public_key_package: PublicKeyPackage):
    _write_json(path, group_key_document(public_key_package))


# -----------------------------------------------------------------------------
# generic shares & keypair blobs
# -----------------------------------------------------------------------------
def write_generic_share_file(path: str, index: int, share: bytes):
    _write_json(path, {"index": index, "share_hex": b2h(share)})


def write_keypair_file(path: str, blob: bytes):
    if len(blob) != KEYPAIR_BYTES:
        raise KeyMaterialError(f"keypair must be {KEYPAIR_BYTES} bytes, got {len(blob)}", path)
    _write_json(path, list(blob))


def load_keypair_file(path: str) -> bytes:
    doc = load_json(path)
    if (not isinstance(doc, list) or len(doc) != KEYPAIR_BYTES
            or not all(isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= 255 for x in doc)):
        raise KeyMaterialError(f"keypair file must be an array of {KEYPAIR_BYTES} byte values", path)
    return bytes(doc)


# -----------------------------------------------------------------------------
# dealer output
# -----------------------------------------------------------------------------
def write_dealer_output(
    out_dir: str,
    key_packages: Mapping[int, KeyPackage],
    public_key_package: PublicKeyPackage,
) -> List[str]:
    """Write s1.json..sN.json and group_public_key.json into ``out_dir``."""
    os.makedirs(out_dir, exist_ok=True)
    written = []
    for identifier in sorted(key_packages):
        path = os.path.join(out_dir, share_filename(identifier))
        write_share_file(path, key_packages[identifier])
        written.append(path)
    path = os.path.join(out_dir, GROUP_KEY_FILENAME)
    write_group_key_file(path, public_key_package)
    written.append(path)
    logger.info("wrote %d share files and %s to %s", len(key_packages), GROUP_KEY_FILENAME, out_dir)
    return written
