import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from spox import __version__
from spox.bitcoin import Utxo
from spox.cli import app
from spox.config import CONFIG_PREFIX, Settings
from spox.context import Context
from spox.deposit_monitor import DepositMonitor
from spox.emily import CreateDepositRequestBody
from spox.rpc import MockBitcoinRPC

runner = CliRunner()

TXID = "ab" * 32
BLOCK_HASH = "c4" * 32
SIGNERS_XONLY = "11" * 32
RECIPIENT = "051a" + "22" * 20

CONFIG_TOML = f"""
polling_interval = 5

[deposit.alice]
signers_xonly = "{SIGNERS_XONLY}"
recipient = "{RECIPIENT}"
max_fee = 80000
lock_time = 50
"""


class FakeEmily:
    def __init__(self) -> None:
        self.created: list[CreateDepositRequestBody] = []
        self.closed = False

    def create_deposit(self, body: CreateDepositRequestBody) -> None:
        self.created.append(body)

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith(CONFIG_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def emily(monkeypatch: pytest.MonkeyPatch) -> FakeEmily:
    """Route Context.from_settings to an in-memory chain with one deposit."""
    emily = FakeEmily()

    def from_settings(cls, settings: Settings) -> Context:
        monitored = settings.monitored_deposits()
        rpc = MockBitcoinRPC()
        rpc.set_chain_tip(200, "ff" * 32)
        rpc.add_block(190, BLOCK_HASH)
        rpc.add_transaction(TXID, BLOCK_HASH, "02000000ab")
        rpc.add_utxo(
            Utxo(
                txid=TXID,
                vout=1,
                script_pub_key=monitored[0].to_script_pubkey(),
                amount_sats=100_000,
                block_height=190,
            )
        )
        monitor = DepositMonitor(rpc, monitored)
        return cls(settings=settings, bitcoin=rpc, emily=emily, monitor=monitor)

    monkeypatch.setattr(Context, "from_settings", classmethod(from_settings))
    return emily


def _config(tmp_path: Path) -> Path:
    path = tmp_path / "spox.toml"
    path.write_text(CONFIG_TOML)
    return path


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"spox v{__version__}" in result.output


def test_run_with_invalid_config_exits(tmp_path: Path) -> None:
    config = tmp_path / "spox.toml"
    config.write_text("polling_interval = 0\n")

    result = runner.invoke(app, ["run", "--once", "--config", str(config)])

    assert result.exit_code == 1


def test_pending_lists_deposits_without_submitting(tmp_path: Path, emily: FakeEmily) -> None:
    result = runner.invoke(app, ["pending", "--config", str(_config(tmp_path))])

    assert result.exit_code == 0, result.output
    assert "Found 1 pending deposits" in result.output
    assert f"TXID: {TXID}" in result.output
    assert "VOUT: 1" in result.output
    assert emily.created == []
    assert emily.closed


def test_run_once_forwards_deposit(tmp_path: Path, emily: FakeEmily) -> None:
    result = runner.invoke(app, ["run", "--once", "--config", str(_config(tmp_path))])

    assert result.exit_code == 0, result.output
    assert f"Forwarded: {TXID}:1" in result.output
    assert "Processed 1 deposits" in result.output
    assert [body.bitcoin_txid for body in emily.created] == [TXID]
    assert emily.created[0].transaction_hex == "02000000ab"
    assert emily.closed
