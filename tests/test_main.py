import json
import logging

import pytest
from typer.testing import CliRunner

from fakes import FakeErc20Reader
from stable_balances.constants import USDC_ADDRESSES
from stable_balances.main import app
from stable_balances.service import BalanceService

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def reader(monkeypatch):
    reader = FakeErc20Reader(balances={(1, USDC_ADDRESSES[1]): 2_500_000})
    build = BalanceService.from_settings
    monkeypatch.setattr(
        BalanceService,
        "from_settings",
        staticmethod(lambda settings, reader_=None: build(settings, reader=reader)),
    )
    monkeypatch.setenv("RPC_URL_1", "https://eth.example/rpc")
    return reader


def test_query_json_output(reader, wallet):
    result = runner.invoke(
        app, ["query", wallet.lower(), "--format", "json", "--log-level", "ERROR"]
    )

    assert result.exit_code == 0, result.output
    body = json.loads(result.stdout)
    assert body["success"] is True
    assert body["totalUsdValue"] == "2.50"
    assert [a["chain"]["id"] for a in body["assets"]] == [1]
    assert reader.closed


def test_query_table_output(reader, wallet):
    result = runner.invoke(app, ["query", wallet, "--log-level", "ERROR"])

    assert result.exit_code == 0, result.output
    assert "Stablecoin Balances" in result.stdout
    assert "Ethereum" in result.stdout
    assert "$2.50" in result.stdout


def test_query_rejects_invalid_address(reader):
    result = runner.invoke(app, ["query", "0x123", "--log-level", "ERROR"])

    assert result.exit_code == 2
    assert "Invalid Ethereum address format" in result.output
    assert reader.call_count == 0


def test_show_config_redacts_rpc_credentials(monkeypatch, tmp_path):
    config = tmp_path / "custom.toml"
    config.write_text(
        '[stable_balances]\nrpc_timeout = 2.5\n\n[stable_balances.rpc_urls]\n'
        '137 = "https://polygon.example/v2/secret-key"\n'
    )
    # restored after the test; the CLI writes this variable when --config is given
    monkeypatch.setenv("STABLE_BALANCES_CONFIG", "")

    result = runner.invoke(
        app, ["query", "0x123", "--config", str(config), "--show-config"]
    )

    assert result.exit_code == 0, result.output
    body = json.loads(result.stdout)
    assert body["rpc_timeout"] == 2.5
    assert body["rpc_urls"]["137"] == "https://polygon.example/***redacted***"
    assert "secret-key" not in result.stdout


def test_serve_runs_uvicorn(monkeypatch):
    calls = {}

    def fake_run(asgi_app, **kwargs):
        calls["app"] = asgi_app
        calls.update(kwargs)

    monkeypatch.setattr("uvicorn.run", fake_run)

    result = runner.invoke(
        app, ["serve", "--host", "0.0.0.0", "--port", "9100", "--log-level", "ERROR"]
    )

    assert result.exit_code == 0, result.output
    assert calls["host"] == "0.0.0.0"
    assert calls["port"] == 9100
    assert calls["log_config"] is None
