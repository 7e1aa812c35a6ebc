# frostmpc/coordinator.py
"""
FROST coordinator: drives both signing rounds across signer daemons.

  Idle -> CollectingCommitments -> BuildingPackage -> CollectingShares
       -> Aggregating -> Done | Failed

Round 1 finishes for every signer before the signing package is built and
before any round-2 request goes out: all participants must sign over the same
commitment set. Round-2 requests run concurrently.

Any signer failure (network, timeout, HTTP error, bad body, missing nonce)
or an invalid share at aggregation fails the whole run. Nothing is retried.
"""
import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import GroupKeyMismatchError, InputError, MinimumSignersError, SignerError
from .frost_core.keystore import load_group_key_file
from .frost_core.network import SignerClient
from .frost_core.threshold.eddsa import (
    PublicKeyPackage,
    SignatureShare,
    SigningCommitments,
    SigningPackage,
    aggregate,
)

logger = logging.getLogger(__name__)

MIN_SIGNERS = 2


class CoordinatorState(enum.Enum):
    IDLE = "idle"
    COLLECTING_COMMITMENTS = "collecting_commitments"
    BUILDING_PACKAGE = "building_package"
    COLLECTING_SHARES = "collecting_shares"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class Coordinator:
    def __init__(
        self,
        endpoints: Sequence[str],
        group_key_path: str,
        timeout: float = 10.0,
        session=None,
        check_group_key: bool = False,
    ):
        urls = [u.strip().rstrip("/") for u in endpoints if u and u.strip()]
        if len(urls) < MIN_SIGNERS:
            raise MinimumSignersError(len(urls), MIN_SIGNERS)
        if len(set(urls)) != len(urls):
            raise InputError("duplicate signer endpoint", ",".join(urls))

        self.group_key_path = group_key_path
        self.check_group_key = check_group_key
        self.clients = [SignerClient(u, session=session, timeout=timeout) for u in urls]
        self.state = CoordinatorState.IDLE

    def _enter(self, state: CoordinatorState):
        logger.debug("coordinator: %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, message: bytes) -> bytes:
        """Produce a 64-byte group signature over ``message``."""
        try:
            signature = self._run(message)
        except Exception:
            self._enter(CoordinatorState.FAILED)
            raise
        self._enter(CoordinatorState.DONE)
        return signature

    def _run(self, message: bytes) -> bytes:
        # local trusted copy; read before any nonce is reserved
        public_key_package = load_group_key_file(self.group_key_path)
        if self.check_group_key:
            self._check_group_key(public_key_package)

        self._enter(CoordinatorState.COLLECTING_COMMITMENTS)
        commitments, identifiers = self._collect_commitments(message)

        self._enter(CoordinatorState.BUILDING_PACKAGE)
        package = SigningPackage(commitments, message)

        self._enter(CoordinatorState.COLLECTING_SHARES)
        shares = self._collect_shares(package, identifiers)

        self._enter(CoordinatorState.AGGREGATING)
        signature = aggregate(package, shares, public_key_package)
        logger.info("aggregated signature from participants %s", sorted(shares))
        return signature

    def _check_group_key(self, public_key_package: PublicKeyPackage):
        for client in self.clients:
            identifier, verifying_share, verifying_key = client.public_key()
            if verifying_key != public_key_package.verifying_key:
                raise GroupKeyMismatchError(client.base_url, "signer holds a different group verifying key")
            expected = public_key_package.verifying_shares.get(identifier)
            if expected != verifying_share:
                raise GroupKeyMismatchError(
                    client.base_url, f"verifying share of participant {identifier} differs from local group key file"
                )
        logger.info("group key consistent across %d signers", len(self.clients))

    def _collect_commitments(self, message: bytes) -> Tuple[Dict[int, SigningCommitments], List[int]]:
        commitments: Dict[int, SigningCommitments] = {}
        identifiers: List[int] = []
        for client in self.clients:
            identifier, c = client.request_commitment(message)
            if identifier in commitments:
                raise SignerError(client.base_url, f"participant {identifier} answered from two endpoints")
            commitments[identifier] = c
            identifiers.append(identifier)
            logger.info("round 1: participant %d @ %s", identifier, client.base_url)
        return commitments, identifiers

    def _collect_shares(self, package: SigningPackage, identifiers: List[int]) -> Dict[int, SignatureShare]:
        shares: Dict[int, SignatureShare] = {}
        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=len(self.clients)) as pool:
            futures = [
                (identifier, client, pool.submit(client.request_signature_share, package))
                for identifier, client in zip(identifiers, self.clients)
            ]
            # wait for every signer, keep the first failure
            for identifier, client, fut in futures:
                try:
                    shares[identifier] = fut.result()
                    logger.info("round 2: share from participant %d @ %s", identifier, client.base_url)
                except Exception as e:
                    logger.error("round 2: participant %d @ %s failed: %s", identifier, client.base_url, e)
                    if first_error is None:
                        first_error = e
        if first_error is not None:
            raise first_error
        return shares


def coordinate(
    message: bytes,
    endpoints: Sequence[str],
    group_key_path: str,
    timeout: float = 10.0,
    session=None,
    check_group_key: bool = False,
) -> bytes:
    return Coordinator(
        endpoints, group_key_path, timeout=timeout, session=session, check_group_key=check_group_key
    ).run(message)
