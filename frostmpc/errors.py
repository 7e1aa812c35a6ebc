# errors.py
"""
Error taxonomy for frostmpc.

Every error carries a stable code so CLI output, daemon responses and logs
can be matched against each other.
"""

from typing import Optional

__all__ = [
    "FrostError",
    "InputError",
    "KeyMaterialError",
    "NonceNotFoundError",
    "InvalidShareError",
    "ProtocolError",
    "MinimumSignersError",
    "SignerError",
    "GroupKeyMismatchError",
    "ReconstructionError",
    "LedgerError",
]


class FrostError(Exception):
    """Base class for all frostmpc errors."""

    def __init__(self, code: str, message: str, context: Optional[str] = None):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"
        super().__init__(full_msg)


# Input errors (E1xx)
class InputError(FrostError):
    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__("FROST_E100", message, context)


# Storage errors (E2xx)
class KeyMaterialError(FrostError):
    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__("FROST_E200", message, context)


# Protocol errors (E3xx)
class NonceNotFoundError(FrostError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("FROST_E300", "nonce not found", context)


class InvalidShareError(FrostError):
    def __init__(self, culprit: int, context: Optional[str] = None):
        self.culprit = culprit
        super().__init__("FROST_E301", f"invalid signature share from participant {culprit}", context)


class ProtocolError(FrostError):
    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__("FROST_E302", message, context)


# Coordination / network errors (E4xx)
class MinimumSignersError(FrostError):
    def __init__(self, got: int, need: int = 2):
        self.got = got
        self.need = need
        super().__init__("FROST_E400", f"need at least {need} signer endpoints, got {got}")


class SignerError(FrostError):
    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        super().__init__("FROST_E401", message, endpoint)


class GroupKeyMismatchError(FrostError):
    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        super().__init__("FROST_E402", message, endpoint)


# Offline tooling (E5xx)
class ReconstructionError(FrostError):
    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__("FROST_E500", message, context)


# Ledger (E6xx)
class LedgerError(FrostError):
    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__("FROST_E600", message, context)
