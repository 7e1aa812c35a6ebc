import json

import pytest

from frostmpc.errors import KeyMaterialError
from frostmpc.frost_core.keystore import (
    address_of,
    load_group_key_file,
    load_keypair_file,
    load_share_file,
    public_key_from_address,
    write_keypair_file,
)


def _rewrite(path, mutate):
    with open(path) as f:
        doc = json.load(f)
    mutate(doc)
    with open(path, "w") as f:
        json.dump(doc, f)


def test_dealer_output_round_trips(dealer, artifacts):
    key_packages, public = dealer
    assert sorted(p.name for p in artifacts.iterdir()) == [
        "group_public_key.json", "s1.json", "s2.json", "s3.json",
    ]
    for i in (1, 2, 3):
        index, kp = load_share_file(str(artifacts / f"s{i}.json"))
        assert index == i
        assert kp == key_packages[i]
    assert load_group_key_file(str(artifacts / "group_public_key.json")) == public


def test_group_key_file_has_address(dealer, group_key_path):
    _, public = dealer
    with open(group_key_path) as f:
        doc = json.load(f)
    assert doc["public_key_hex"] == public.verifying_key.hex()
    assert public_key_from_address(doc["address_base58"]) == public.verifying_key
    assert sorted(doc["verifying_shares"]) == ["0100", "0200", "0300"]


def test_share_index_must_match(artifacts):
    path = str(artifacts / "s2.json")
    _rewrite(path, lambda d: d.update(participant_index=3))
    with pytest.raises(KeyMaterialError):
        load_share_file(path)


def test_share_with_zero_secret_rejected(artifacts):
    path = str(artifacts / "s1.json")
    _rewrite(path, lambda d: d["key_package"].update(signing_share="00" * 32))
    with pytest.raises(KeyMaterialError):
        load_share_file(path)


def test_group_key_address_must_agree(dealer, group_key_path):
    _rewrite(group_key_path, lambda d: d.update(address_base58=address_of(bytes(32))))
    with pytest.raises(KeyMaterialError):
        load_group_key_file(group_key_path)


def test_group_key_needs_two_shares(group_key_path):
    _rewrite(group_key_path, lambda d: d.update(verifying_shares={"0100": d["verifying_shares"]["0100"]}))
    with pytest.raises(KeyMaterialError):
        load_group_key_file(group_key_path)


def test_missing_and_garbled_files(tmp_path):
    with pytest.raises(KeyMaterialError):
        load_share_file(str(tmp_path / "absent.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(KeyMaterialError):
        load_group_key_file(str(bad))


def test_keypair_file(tmp_path):
    path = str(tmp_path / "keypair.json")
    blob = bytes(range(64))
    write_keypair_file(path, blob)
    with open(path) as f:
        assert json.load(f) == list(range(64))
    assert load_keypair_file(path) == blob

    with pytest.raises(KeyMaterialError):
        write_keypair_file(path, blob[:32])
    (tmp_path / "short.json").write_text("[1, 2, 3]")
    with pytest.raises(KeyMaterialError):
        load_keypair_file(str(tmp_path / "short.json"))


def test_bad_address():
    with pytest.raises(KeyMaterialError):
        public_key_from_address("0OIl")
    with pytest.raises(KeyMaterialError):
        public_key_from_address(address_of(b"\x01" * 16))


def test_binary_file_is_key_material_error(tmp_path):
    blob = tmp_path / "s1.json"
    blob.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(KeyMaterialError):
        load_share_file(str(blob))


def test_keypair_rejects_booleans(tmp_path):
    path = tmp_path / "keypair.json"
    path.write_text(json.dumps([True] + [0] * 63))
    with pytest.raises(KeyMaterialError):
        load_keypair_file(str(path))
