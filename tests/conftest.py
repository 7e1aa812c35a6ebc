import os

import pytest
import requests
from fastapi.testclient import TestClient

from frostmpc.frost_core.keystore import write_dealer_output
from frostmpc.frost_core.threshold.eddsa import generate_with_dealer
from frostmpc.node_sign import create_app


class RoutingSession:
    """requests-like session that hands each signer URL to an in-process app."""

    def __init__(self, apps):
        self.clients = {base: TestClient(app) for base, app in apps.items()}
        self.calls = []

    def _route(self, url):
        for base, client in self.clients.items():
            if url.startswith(base + "/"):
                return client, url[len(base):]
        raise requests.ConnectionError(f"no route to {url}")

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url))
        client, path = self._route(url)
        return client.post(path, json=json)

    def get(self, url, timeout=None):
        self.calls.append(("GET", url))
        client, path = self._route(url)
        return client.get(path)


@pytest.fixture(scope="session")
def dealer():
    """(key_packages, public_key_package) for a 2-of-3 group"""
    return generate_with_dealer(max_signers=3, min_signers=2)


@pytest.fixture
def artifacts(tmp_path, dealer):
    key_packages, public_key_package = dealer
    out = tmp_path / "frost-artifacts"
    write_dealer_output(str(out), key_packages, public_key_package)
    return out


@pytest.fixture
def group_key_path(artifacts):
    return str(artifacts / "group_public_key.json")


@pytest.fixture
def signer_apps(dealer):
    key_packages, _ = dealer
    return {f"http://signer{i}": create_app(kp) for i, kp in key_packages.items()}


@pytest.fixture
def session(signer_apps):
    return RoutingSession(signer_apps)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("FROST_"):
            monkeypatch.delenv(name, raising=False)
