"""
Unit tests for FileSystemWallet (fabric `.id` layout).
"""

import asyncio
import json

import pytest

from crowdledger.services.fabric.errors import WalletError
from crowdledger.services.fabric.models import X509Identity
from crowdledger.services.fabric.wallet import FileSystemWallet


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def identity() -> X509Identity:
    return X509Identity(msp_id="StartupOrgMSP", certificate="CERT", private_key="KEY")


def test_put_then_get(tmp_path, identity):
    wallet = FileSystemWallet(tmp_path / "StartupOrg")
    run(wallet.put("startuporgadmin", identity))

    assert (tmp_path / "StartupOrg" / "startuporgadmin.id").is_file()
    assert run(wallet.get("startuporgadmin")) == identity
    assert run(wallet.exists("startuporgadmin")) is True


def test_stored_document_is_fabric_wallet_json(tmp_path, identity):
    wallet = FileSystemWallet(tmp_path)
    run(wallet.put("admin", identity))

    doc = json.loads((tmp_path / "admin.id").read_text(encoding="utf-8"))
    assert doc["mspId"] == "StartupOrgMSP"
    assert doc["credentials"] == {"certificate": "CERT", "privateKey": "KEY"}


def test_get_missing_identity_returns_none(tmp_path):
    wallet = FileSystemWallet(tmp_path / "empty")
    assert run(wallet.get("nobody")) is None
    assert run(wallet.exists("nobody")) is False


def test_malformed_identity_raises(tmp_path):
    (tmp_path / "broken.id").write_text('{"mspId": "X"}', encoding="utf-8")
    with pytest.raises(WalletError):
        run(FileSystemWallet(tmp_path).get("broken"))


def test_unreadable_identity_raises(tmp_path):
    (tmp_path / "locked.id").mkdir()
    with pytest.raises(WalletError, match="Unreadable"):
        run(FileSystemWallet(tmp_path).get("locked"))


@pytest.mark.parametrize("label", ["", "../admin", "a\\b"])
def test_invalid_labels_rejected(tmp_path, label):
    with pytest.raises(WalletError):
        run(FileSystemWallet(tmp_path).get(label))


def test_list_labels(tmp_path, identity):
    wallet = FileSystemWallet(tmp_path / "w")
    assert run(wallet.list()) == []

    run(wallet.put("investororgadmin", identity))
    run(wallet.put("appuser", identity))
    (tmp_path / "w" / "notes.txt").write_text("ignored", encoding="utf-8")
    assert run(wallet.list()) == ["appuser", "investororgadmin"]
