# frost_core/__init__.py
from .shamir import shamir_split, shamir_reconstruct, gf256_split, gf256_reconstruct
from .threshold.eddsa import (
    KeyPackage,
    PublicKeyPackage,
    SignatureShare,
    SigningCommitments,
    SigningNonces,
    SigningPackage,
    aggregate,
    commit,
    generate_with_dealer,
    reconstruct,
    sign,
    verify_signature,
)
from .network import SignerClient
