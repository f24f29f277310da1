from __future__ import annotations

import os

import pytest

WALLET = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep host RPC variables and config files out of settings."""
    for key in list(os.environ):
        if key.startswith("RPC_URL_") or key.startswith("STABLE_BALANCES_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def wallet() -> str:
    return WALLET
