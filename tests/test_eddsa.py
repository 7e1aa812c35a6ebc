import itertools
import json

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from frostmpc.errors import InputError, InvalidShareError, ProtocolError, ReconstructionError
from frostmpc.frost_core.ed25519 import L, point_mul_base
from frostmpc.frost_core.threshold.eddsa import (
    KeyPackage,
    PublicKeyPackage,
    SignatureShare,
    SigningCommitments,
    SigningPackage,
    aggregate,
    commit,
    decode_identifier,
    encode_identifier,
    generate_with_dealer,
    reconstruct,
    sign,
    sign_with_scalar,
    threshold_sign,
    verify_signature,
)

MESSAGE = bytes.fromhex("deadbeef")


def _round_trip_json(obj):
    return json.loads(json.dumps(obj))


def test_every_pair_of_three_signs(dealer):
    key_packages, public = dealer
    for a, b in itertools.combinations(sorted(key_packages), 2):
        sig = threshold_sign([key_packages[a], key_packages[b]], MESSAGE, public)
        assert len(sig) == 64
        assert verify_signature(public.verifying_key, MESSAGE, sig)


def test_signature_is_plain_ed25519(dealer):
    key_packages, public = dealer
    sig = threshold_sign([key_packages[1], key_packages[3]], b"hello", public)
    # raises InvalidSignature on failure
    Ed25519PublicKey.from_public_bytes(public.verifying_key).verify(sig, b"hello")


def test_wrong_message_fails(dealer):
    key_packages, public = dealer
    sig = threshold_sign([key_packages[1], key_packages[2]], b"Message A", public)
    assert verify_signature(public.verifying_key, b"Message B", sig) is False


def test_all_three_can_sign(dealer):
    key_packages, public = dealer
    sig = threshold_sign(list(key_packages.values()), MESSAGE, public)
    assert verify_signature(public.verifying_key, MESSAGE, sig)


def test_identifier_round_trip():
    for i in (1, 2, 3, 255, 256, 0xFFFF):
        assert decode_identifier(encode_identifier(i)) == i
    assert encode_identifier(1) == "0100"


def test_identifier_accepts_scalar_encoding():
    assert decode_identifier("02" + "00" * 31) == 2


@pytest.mark.parametrize("bad", ["01", "", "0000", "zz00", "010001"])
def test_identifier_rejects(bad):
    with pytest.raises(InputError):
        decode_identifier(bad)


def test_encode_identifier_range():
    with pytest.raises(InputError):
        encode_identifier(0)
    with pytest.raises(InputError):
        encode_identifier(0x10000)


def test_dealer_parameters():
    with pytest.raises(InputError):
        generate_with_dealer(max_signers=3, min_signers=1)
    with pytest.raises(InputError):
        generate_with_dealer(max_signers=2, min_signers=3)


def test_dealer_output_is_consistent(dealer):
    key_packages, public = dealer
    assert sorted(key_packages) == [1, 2, 3]
    for i, kp in key_packages.items():
        assert kp.identifier == i
        assert kp.min_signers == 2
        assert kp.verifying_key == public.verifying_key
        assert public.verifying_shares[i] == point_mul_base(kp.signing_share)


def test_commit_is_fresh_each_time(dealer):
    key_packages, _ = dealer
    _, c1 = commit(key_packages[1].signing_share)
    _, c2 = commit(key_packages[1].signing_share)
    assert c1 != c2


def test_serialization_round_trips(dealer):
    key_packages, public = dealer
    nonces, commitments = commit(key_packages[1].signing_share)
    _, other = commit(key_packages[2].signing_share)
    package = SigningPackage({1: commitments, 2: other}, MESSAGE)

    assert SigningCommitments.from_dict(_round_trip_json(commitments.to_dict())) == commitments
    assert SigningPackage.from_dict(_round_trip_json(package.to_dict())) == package
    assert KeyPackage.from_dict(_round_trip_json(key_packages[2].to_dict())) == key_packages[2]
    assert PublicKeyPackage.from_dict(_round_trip_json(public.to_dict())) == public

    share = sign(package, nonces, key_packages[1])
    assert SignatureShare.from_dict(_round_trip_json(share.to_dict())) == share


def test_package_json_shape(dealer):
    key_packages, _ = dealer
    _, c1 = commit(key_packages[1].signing_share)
    _, c2 = commit(key_packages[2].signing_share)
    doc = SigningPackage({2: c2, 1: c1}, MESSAGE).to_dict()
    assert doc["header"] == {"version": 0, "ciphersuite": "FROST-ED25519-SHA512-v1"}
    assert list(doc["signing_commitments"]) == ["0100", "0200"]
    assert doc["message"] == "deadbeef"


def test_unknown_ciphersuite_rejected(dealer):
    key_packages, _ = dealer
    doc = key_packages[1].to_dict()
    doc["header"] = {"version": 0, "ciphersuite": "FROST-secp256k1-SHA256-v1"}
    with pytest.raises(InputError):
        KeyPackage.from_dict(doc)


def test_key_package_share_mismatch_rejected(dealer):
    key_packages, _ = dealer
    doc = key_packages[1].to_dict()
    doc["verifying_share"] = key_packages[2].to_dict()["verifying_share"]
    with pytest.raises(InputError):
        KeyPackage.from_dict(doc)


def test_signing_package_is_frozen(dealer):
    key_packages, _ = dealer
    _, c1 = commit(key_packages[1].signing_share)
    _, c2 = commit(key_packages[2].signing_share)
    source = {1: c1, 2: c2}
    package = SigningPackage(source, MESSAGE)
    source.pop(2)
    assert sorted(package.commitments) == [1, 2]
    with pytest.raises(TypeError):
        package.commitments[3] = c1


def _two_party_round(key_packages, ids=(1, 2)):
    nonces, commitments = {}, {}
    for i in ids:
        nonces[i], commitments[i] = commit(key_packages[i].signing_share)
    return nonces, SigningPackage(commitments, MESSAGE)


def test_sign_rejects_too_few_commitments(dealer):
    key_packages, _ = dealer
    nonces, c = commit(key_packages[1].signing_share)
    with pytest.raises(ProtocolError):
        sign(SigningPackage({1: c}, MESSAGE), nonces, key_packages[1])


def test_sign_rejects_package_without_participant(dealer):
    key_packages, _ = dealer
    nonces, package = _two_party_round(key_packages, (1, 2))
    with pytest.raises(ProtocolError):
        sign(package, nonces[1], key_packages[3])


def test_sign_rejects_foreign_commitment(dealer):
    key_packages, _ = dealer
    nonces, package = _two_party_round(key_packages, (1, 2))
    stale, _ = commit(key_packages[1].signing_share)
    with pytest.raises(ProtocolError):
        sign(package, stale, key_packages[1])


def test_aggregate_names_the_bad_share(dealer):
    key_packages, public = dealer
    nonces, package = _two_party_round(key_packages, (1, 2))
    shares = {i: sign(package, nonces[i], key_packages[i]) for i in (1, 2)}
    shares[2] = SignatureShare((shares[2].share + 1) % L)
    with pytest.raises(InvalidShareError) as exc:
        aggregate(package, shares, public)
    assert exc.value.culprit == 2


def test_aggregate_rejects_share_set_mismatch(dealer):
    key_packages, public = dealer
    nonces, package = _two_party_round(key_packages, (1, 2))
    shares = {1: sign(package, nonces[1], key_packages[1])}
    with pytest.raises(ProtocolError):
        aggregate(package, shares, public)


def test_reconstruct_matches_group_key(dealer):
    key_packages, public = dealer
    for a, b in itertools.combinations(sorted(key_packages), 2):
        scalar = reconstruct([key_packages[a], key_packages[b]])
        assert point_mul_base(scalar) == public.verifying_key


def test_reconstruct_needs_threshold(dealer):
    key_packages, _ = dealer
    with pytest.raises(ReconstructionError):
        reconstruct([key_packages[1]])
    with pytest.raises(ReconstructionError):
        reconstruct([key_packages[1], key_packages[1]])
    with pytest.raises(ReconstructionError):
        reconstruct([])


def test_reconstruct_rejects_mixed_groups(dealer):
    key_packages, _ = dealer
    other, _ = generate_with_dealer(3, 2)
    with pytest.raises(ReconstructionError):
        reconstruct([key_packages[1], other[2]])


def test_sign_with_reconstructed_scalar(dealer):
    key_packages, public = dealer
    scalar = reconstruct([key_packages[2], key_packages[3]])
    sig = sign_with_scalar(scalar, MESSAGE)
    assert verify_signature(public.verifying_key, MESSAGE, sig)
    assert sign_with_scalar(scalar, MESSAGE) == sig


def test_library_form_uses_scalar_identifiers(dealer):
    key_packages, public = dealer
    assert key_packages[2].to_lib()["identifier"] == "02" + "00" * 31
    assert key_packages[2].to_dict()["identifier"] == "0200"
    assert sorted(public.to_lib()["verifying_shares"]) == ["0" + str(i) + "00" * 31 for i in (1, 2, 3)]
