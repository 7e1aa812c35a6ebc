# config.py
"""
Environment configuration. A .env file (current dir or above) is loaded by
``load_env``; real environment variables win over it.

  FROST_ARTIFACTS_DIR=frost-artifacts
  FROST_SHARE_PATH=frost-artifacts/s1.json
  FROST_LISTEN_ADDR=127.0.0.1:3000
  FROST_SIGNERS=http://127.0.0.1:3001,http://127.0.0.1:3002
  FROST_GROUP_KEY=frost-artifacts/group_public_key.json
  HTTP_TIMEOUT_S=10
  FROST_CHECK_GROUP_KEY=false
  FROST_RECONSTRUCTION_STRATEGY=matched|generic   (no default on purpose)
  SOLANA_RPC_URL=https://api.devnet.solana.com
  LOG_LEVEL=INFO
"""
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from .errors import InputError

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDR = "127.0.0.1:3000"
DEFAULT_RPC_URL = "https://api.devnet.solana.com"
STRATEGIES = ("matched", "generic")


def load_env() -> Optional[str]:
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)
        logger.debug(".env loaded from %s", path)
        return path
    return None


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def split_endpoints(raw: str) -> List[str]:
    return [x.strip().rstrip("/") for x in raw.split(",") if x.strip()]


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    host, sep, port = addr.strip().rpartition(":")
    if not sep or not host:
        raise InputError("listen address must look like HOST:PORT", addr)
    try:
        port_num = int(port)
    except ValueError:
        raise InputError("listen port is not a number", addr)
    if not 0 < port_num < 65536:
        raise InputError("listen port out of range", addr)
    return host.strip("[]"), port_num


def parse_strategy(value: Optional[str]) -> str:
    if not value:
        raise InputError(
            "reconstruction strategy must be chosen explicitly",
            "use --strategy or FROST_RECONSTRUCTION_STRATEGY (matched|generic)",
        )
    strategy = value.strip().lower()
    if strategy not in STRATEGIES:
        raise InputError(f"unknown reconstruction strategy '{value}'", "expected matched or generic")
    return strategy


@dataclass
class Settings:
    artifacts_dir: str = "frost-artifacts"
    share_path: Optional[str] = None
    listen_addr: str = DEFAULT_LISTEN_ADDR
    signers: Optional[str] = None
    group_key: str = os.path.join("frost-artifacts", "group_public_key.json")
    http_timeout_s: float = 10.0
    check_group_key: bool = False
    reconstruction_strategy: Optional[str] = None
    rpc_url: str = DEFAULT_RPC_URL
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        artifacts_dir = os.getenv("FROST_ARTIFACTS_DIR", "frost-artifacts")
        try:
            timeout = float(os.getenv("HTTP_TIMEOUT_S", "10"))
        except ValueError:
            raise InputError("HTTP_TIMEOUT_S must be a number")
        if timeout <= 0:
            raise InputError("HTTP_TIMEOUT_S must be positive")
        return cls(
            artifacts_dir=artifacts_dir,
            share_path=os.getenv("FROST_SHARE_PATH") or None,
            listen_addr=os.getenv("FROST_LISTEN_ADDR", DEFAULT_LISTEN_ADDR),
            signers=os.getenv("FROST_SIGNERS") or None,
            group_key=os.getenv("FROST_GROUP_KEY", os.path.join(artifacts_dir, "group_public_key.json")),
            http_timeout_s=timeout,
            check_group_key=_bool_env("FROST_CHECK_GROUP_KEY"),
            reconstruction_strategy=os.getenv("FROST_RECONSTRUCTION_STRATEGY") or None,
            rpc_url=os.getenv("SOLANA_RPC_URL", DEFAULT_RPC_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
