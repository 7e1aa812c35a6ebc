# frostmpc/transfer.py
"""
Solana transfer submission.

Builds an unsigned System Program transfer, gets an Ed25519 signature over
the message bytes from a key source, attaches it and sends the transaction
through JSON-RPC. Ledger errors are passed through as reported.

Key sources:
  KeypairSource    64-byte keypair blob from offline reconstruction
  ThresholdSource  signer daemons + coordinator; nobody holds the key
"""
import base64
import logging
import struct
from typing import Any, Dict, List, Sequence

import base58
import requests

from .coordinator import coordinate
from .errors import LedgerError
from .frost_core.keystore import address_of, load_group_key_file, load_keypair_file, public_key_from_address
from .frost_core.threshold.eddsa import sign_with_scalar
from .reconstruct import split_keypair

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
SYSTEM_PROGRAM_ID = bytes(32)  # 11111111111111111111111111111111
SYSTEM_TRANSFER = 2


# ---------- wire encoding ----------
def compact_u16(n: int) -> bytes:
    if not 0 <= n <= 0xFFFF:
        raise ValueError("compact-u16 out of range")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def build_transfer_message(sender: bytes, recipient: bytes, lamports: int, recent_blockhash: bytes) -> bytes:
    """Legacy message: one signer (sender), one System Program transfer."""
    if sender == recipient:
        raise LedgerError("sender and recipient are the same account")
    if not 0 < lamports < 2**64:
        raise LedgerError("lamports must be a positive u64")
    if len(recent_blockhash) != 32:
        raise LedgerError("recent blockhash must be 32 bytes")

    # header: 1 required signature, 0 readonly signed, 1 readonly unsigned (the program)
    header = bytes([1, 0, 1])
    keys = [sender, recipient, SYSTEM_PROGRAM_ID]
    data = struct.pack("<IQ", SYSTEM_TRANSFER, lamports)
    instruction = (
        bytes([2])                          # program id index
        + compact_u16(2) + bytes([0, 1])    # from, to
        + compact_u16(len(data)) + data
    )
    return (
        header
        + compact_u16(len(keys)) + b"".join(keys)
        + recent_blockhash
        + compact_u16(1) + instruction
    )


def attach_signature(message: bytes, signature: bytes) -> bytes:
    if len(signature) != 64:
        raise LedgerError(f"signature must be 64 bytes, got {len(signature)}")
    return compact_u16(1) + signature + message


# ---------- RPC ----------
class SolanaRpcClient:
    def __init__(self, url: str, session=None, timeout: float = 30.0):
        self.url = url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._id = 0

    def _rpc(self, method: str, params: List[Any]) -> Any:
        self._id += 1
        body = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        try:
            resp = self.session.post(self.url, json=body, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise LedgerError(f"{method} failed: {e}", self.url)
        except ValueError:
            raise LedgerError(f"{method} returned a non-JSON body", self.url)
        if "error" in data:
            err = data["error"] or {}
            raise LedgerError(str(err.get("message", err)), method)
        if "result" not in data:
            raise LedgerError(f"{method} returned no result", self.url)
        return data["result"]

    def get_balance(self, address: str) -> int:
        result = self._rpc("getBalance", [address, {"commitment": "confirmed"}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError):
            raise LedgerError("getBalance returned an unexpected result", repr(result))

    def get_latest_blockhash(self) -> bytes:
        result = self._rpc("getLatestBlockhash", [{"commitment": "finalized"}])
        try:
            return base58.b58decode(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError):
            raise LedgerError("getLatestBlockhash returned an unexpected result", repr(result))

    def send_transaction(self, tx: bytes) -> str:
        encoded = base64.b64encode(tx).decode("ascii")
        return self._rpc("sendTransaction", [encoded, {"encoding": "base64", "preflightCommitment": "confirmed"}])


# ---------- key sources ----------
class KeypairSource:
    def __init__(self, blob: bytes):
        self._scalar, self.public_key = split_keypair(blob)

    @classmethod
    def from_file(cls, path: str) -> "KeypairSource":
        return cls(load_keypair_file(path))

    def sign(self, message: bytes) -> bytes:
        return sign_with_scalar(self._scalar, message)


class ThresholdSource:
    def __init__(self, endpoints: Sequence[str], group_key_path: str, timeout: float = 10.0, session=None):
        self.endpoints = list(endpoints)
        self.group_key_path = group_key_path
        self.timeout = timeout
        self.session = session
        self.public_key = load_group_key_file(group_key_path).verifying_key

    def sign(self, message: bytes) -> bytes:
        return coordinate(message, self.endpoints, self.group_key_path, timeout=self.timeout, session=self.session)


# ---------- main flow ----------
def submit_transfer(source, recipient: str, lamports: int, rpc: SolanaRpcClient, out=print) -> Dict[str, Any]:
    sender_address = address_of(source.public_key)
    recipient_key = public_key_from_address(recipient)

    balance = rpc.get_balance(sender_address)
    out(f"Sender pubkey: {sender_address}")
    out(f"Current balance: {balance} lamports ({balance / LAMPORTS_PER_SOL} SOL)")
    if balance < lamports:
        raise LedgerError(f"Insufficient balance: trying to send {lamports} lamports but only have {balance}")

    blockhash = rpc.get_latest_blockhash()
    message = build_transfer_message(source.public_key, recipient_key, lamports, blockhash)
    signature = source.sign(message)
    tx = attach_signature(message, signature)
    logger.info("sending %d lamports %s -> %s", lamports, sender_address, recipient)

    confirmation = rpc.send_transaction(tx)
    out(f"Signature: {confirmation}")
    return {"sender": sender_address, "balance": balance, "signature": confirmation}
