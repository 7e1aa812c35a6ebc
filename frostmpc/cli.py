#!/usr/bin/env python3
"""
frostmpc: threshold Ed25519 (FROST) tooling for a Solana account

Commands:
  dkg            Trusted-dealer key generation: share files + group public key
  sign           Sign locally with two share files
  verify         Verify a signature against the group public key
  daemon         Serve one share as a signer node
  coordinate     Run both signing rounds across signer nodes
  reconstruct    Rebuild a raw keypair from share files (matched | generic)
  generic-split  Split a 32-byte secret with the generic GF(2^8) scheme
  transfer       Send lamports, signed by a keypair file or by signer nodes
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from .config import Settings, load_env, parse_listen_addr, split_endpoints
from .coordinator import coordinate
from .errors import FrostError, InputError
from .frost_core.ed25519 import b2h, h2b
from .frost_core.keystore import (
    GROUP_KEY_FILENAME,
    address_of,
    load_group_key_file,
    load_share_file,
    write_dealer_output,
)
from .frost_core.threshold.eddsa import generate_with_dealer, threshold_sign, verify_signature
from .reconstruct import reconstruct_keypair, write_generic_shares
from .transfer import KeypairSource, SolanaRpcClient, ThresholdSource, submit_transfer

logger = logging.getLogger("frostmpc")


def _fail(err: FrostError) -> int:
    print(f"ERROR: {err}", file=sys.stderr)
    return 1


def _endpoints(raw: Optional[str]) -> List[str]:
    if not raw:
        raise InputError("no signer endpoints given", "use --signers or FROST_SIGNERS")
    return split_endpoints(raw)


def cmd_dkg(args, settings: Settings) -> int:
    out_dir = args.out_dir or settings.artifacts_dir
    key_packages, public_key_package = generate_with_dealer(max_signers=args.n, min_signers=args.t)
    write_dealer_output(out_dir, key_packages, public_key_package)
    print(f"✅ DKG complete. Wrote shares and group public key to {out_dir}")
    print(f"Address: {address_of(public_key_package.verifying_key)}")
    return 0


def cmd_sign(args, settings: Settings) -> int:
    _, kp1 = load_share_file(args.share1)
    _, kp2 = load_share_file(args.share2)
    message = h2b(args.message_hex, "message")
    group_key = os.path.join(os.path.dirname(os.path.abspath(args.share1)), GROUP_KEY_FILENAME)
    public_key_package = load_group_key_file(group_key)
    signature = threshold_sign([kp1, kp2], message, public_key_package)
    print(b2h(signature))
    return 0


def cmd_verify(args, settings: Settings) -> int:
    public_key_package = load_group_key_file(args.pubkey_json)
    message = h2b(args.message_hex, "message")
    signature = h2b(args.signature_hex, "signature", length=64)
    if verify_signature(public_key_package.verifying_key, message, signature):
        print("✅ Signature verified")
        return 0
    print("❌ Verification failed")
    return 1


def cmd_daemon(args, settings: Settings) -> int:
    from .node_sign import serve

    share_path = args.share_file or settings.share_path
    if not share_path:
        raise InputError("no share file given", "pass SHARE_FILE or set FROST_SHARE_PATH")
    host, port = parse_listen_addr(args.addr or settings.listen_addr)
    serve(share_path, host, port, log_level=settings.log_level)
    return 0


def cmd_coordinate(args, settings: Settings) -> int:
    message = h2b(args.msg_hex, "msg_hex")
    signature = coordinate(
        message,
        _endpoints(args.signers or settings.signers),
        args.group_key or settings.group_key,
        timeout=args.timeout or settings.http_timeout_s,
        check_group_key=args.check_group_key or settings.check_group_key,
    )
    print(b2h(signature))
    return 0


def cmd_reconstruct(args, settings: Settings) -> int:
    expected = None
    if args.group_key:
        expected = load_group_key_file(args.group_key).verifying_key
    blob = reconstruct_keypair(
        args.shares,
        args.strategy or settings.reconstruction_strategy,
        out_path=args.out,
        expected_public_key=expected,
    )
    print(f"✅ Keypair written to {args.out}")
    print(f"Address: {address_of(blob[32:])}")
    return 0


def cmd_generic_split(args, settings: Settings) -> int:
    secret = h2b(args.secret_hex, "secret", length=32)
    for path in write_generic_shares(args.out_dir, secret, n=args.n, t=args.t):
        print(path)
    return 0


def cmd_transfer(args, settings: Settings) -> int:
    if args.keypair:
        source = KeypairSource.from_file(args.keypair)
    else:
        source = ThresholdSource(
            _endpoints(args.signers or settings.signers),
            args.group_key or settings.group_key,
            timeout=settings.http_timeout_s,
        )
    rpc = SolanaRpcClient(args.rpc or settings.rpc_url)
    submit_transfer(source, args.to, args.lamports, rpc)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="frostmpc", description="Threshold Ed25519 (FROST) signing tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("dkg", help="Trusted-dealer key generation")
    p.add_argument("--out-dir", help="Output directory (default: FROST_ARTIFACTS_DIR)")
    p.add_argument("-n", type=int, default=3, help="Number of participants")
    p.add_argument("-t", type=int, default=2, help="Signing threshold")
    p.set_defaults(func=cmd_dkg)

    p = sub.add_parser("sign", help="Sign locally with two share files")
    p.add_argument("share1")
    p.add_argument("share2")
    p.add_argument("message_hex")
    p.set_defaults(func=cmd_sign)

    p = sub.add_parser("verify", help="Verify a signature")
    p.add_argument("pubkey_json", help="Path to group_public_key.json")
    p.add_argument("message_hex")
    p.add_argument("signature_hex")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("daemon", help="Serve a share as a signer node")
    p.add_argument("share_file", nargs="?", help="Share file (default: FROST_SHARE_PATH)")
    p.add_argument("addr", nargs="?", help="HOST:PORT (default: FROST_LISTEN_ADDR)")
    p.set_defaults(func=cmd_daemon)

    p = sub.add_parser("coordinate", help="Collect shares from signer nodes and aggregate")
    p.add_argument("--msg-hex", required=True, help="Message to sign (hex)")
    p.add_argument("--signers", help="Comma-separated signer base URLs")
    p.add_argument("--group-key", help="Path to group_public_key.json")
    p.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    p.add_argument("--check-group-key", action="store_true",
                   help="Compare every signer's public material with the group key file first")
    p.set_defaults(func=cmd_coordinate)

    p = sub.add_parser("reconstruct", help="Rebuild a raw keypair from share files")
    p.add_argument("shares", nargs="+", help="Share files")
    p.add_argument("--out", required=True, help="Keypair output file")
    p.add_argument("--strategy", choices=["matched", "generic"],
                   help="Reconstruction strategy (default: FROST_RECONSTRUCTION_STRATEGY)")
    p.add_argument("--group-key", help="Fail unless the result matches this group public key")
    p.set_defaults(func=cmd_reconstruct)

    p = sub.add_parser("generic-split", help="Split a secret with the generic GF(2^8) scheme")
    p.add_argument("--secret-hex", required=True)
    p.add_argument("--out-dir", required=True)
    p.add_argument("-n", type=int, default=3)
    p.add_argument("-t", type=int, default=2)
    p.set_defaults(func=cmd_generic_split)

    p = sub.add_parser("transfer", help="Send lamports from the group account")
    p.add_argument("--to", required=True, help="Recipient address (base58)")
    p.add_argument("--lamports", type=int, default=1_000_000)
    p.add_argument("--rpc", help="RPC URL (default: SOLANA_RPC_URL)")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--keypair", help="Reconstructed keypair file")
    src.add_argument("--signers", help="Comma-separated signer base URLs")
    p.add_argument("--group-key", help="Path to group_public_key.json (with --signers)")
    p.set_defaults(func=cmd_transfer)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return args.func(args, settings)
    except FrostError as e:
        return _fail(e)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
