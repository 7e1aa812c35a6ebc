import json
import os

from frostmpc.cli import main


def _last_line(capsys):
    return capsys.readouterr().out.strip().splitlines()[-1]


def test_dkg_sign_verify(tmp_path, capsys):
    out = str(tmp_path / "keys")
    assert main(["dkg", "--out-dir", out]) == 0
    assert sorted(os.listdir(out)) == ["group_public_key.json", "s1.json", "s2.json", "s3.json"]
    with open(os.path.join(out, "group_public_key.json")) as f:
        address = json.load(f)["address_base58"]
    assert _last_line(capsys) == f"Address: {address}"

    share1, share3 = os.path.join(out, "s1.json"), os.path.join(out, "s3.json")
    assert main(["sign", share1, share3, "deadbeef"]) == 0
    signature = _last_line(capsys)
    assert len(signature) == 128

    group_key = os.path.join(out, "group_public_key.json")
    assert main(["verify", group_key, "deadbeef", signature]) == 0
    assert "Signature verified" in _last_line(capsys)

    assert main(["verify", group_key, "deadbeee", signature]) == 1
    assert "Verification failed" in _last_line(capsys)


def test_dkg_uses_artifacts_dir_env(tmp_path, monkeypatch):
    out = tmp_path / "from-env"
    monkeypatch.setenv("FROST_ARTIFACTS_DIR", str(out))
    assert main(["dkg", "-n", "4", "-t", "3"]) == 0
    assert (out / "s4.json").exists()


def test_reconstruct_requires_strategy(artifacts, tmp_path, capsys):
    shares = [str(artifacts / "s1.json"), str(artifacts / "s2.json")]
    assert main(["reconstruct", *shares, "--out", str(tmp_path / "kp.json")]) == 1
    assert "FROST_E100" in capsys.readouterr().err


def test_reconstruct_matched(dealer, artifacts, group_key_path, tmp_path, capsys):
    _, public = dealer
    out = tmp_path / "kp.json"
    shares = [str(artifacts / "s2.json"), str(artifacts / "s3.json")]
    assert main(["reconstruct", *shares, "--strategy", "matched", "--out", str(out), "--group-key", group_key_path]) == 0
    assert json.loads(out.read_text())[32:] == list(public.verifying_key)


def test_reconstruct_strategy_from_env(artifacts, tmp_path, monkeypatch, group_key_path, capsys):
    monkeypatch.setenv("FROST_RECONSTRUCTION_STRATEGY", "generic")
    shares = [str(artifacts / "s1.json"), str(artifacts / "s2.json")]
    rc = main(["reconstruct", *shares, "--out", str(tmp_path / "kp.json"), "--group-key", group_key_path])
    assert rc == 1
    assert "FROST_E500" in capsys.readouterr().err


def test_coordinate_needs_two_signers(group_key_path, capsys):
    rc = main(["coordinate", "--msg-hex", "deadbeef", "--signers", "http://127.0.0.1:1", "--group-key", group_key_path])
    assert rc == 1
    assert "FROST_E400" in capsys.readouterr().err


def test_bad_message_hex(artifacts, capsys):
    rc = main(["sign", str(artifacts / "s1.json"), str(artifacts / "s2.json"), "xyz"])
    assert rc == 1
    assert "ERROR" in capsys.readouterr().err


def test_binary_share_file_reports_error(tmp_path, capsys):
    share = tmp_path / "s1.json"
    share.write_bytes(b"\xff\xfe\x00garbage")
    assert main(["sign", str(share), str(share), "deadbeef"]) == 1
    assert "FROST_E200" in capsys.readouterr().err
