"""
Unit tests for fabric value types: TransactionRequest validation, identity
documents and payload normalization.
"""

import pytest

from crowdledger.services.fabric.models import (
    TransactionRequest,
    X509Identity,
    normalize_evaluate_result,
    normalize_submit_result,
)


def test_transaction_request_accepts_strings_and_freezes_args():
    request = TransactionRequest("investor", "InvestorContract", "MakeInvestment", ["INV1", "5000"])
    assert request.args == ("INV1", "5000")
    assert request.qualified_name == "InvestorContract:MakeInvestment"


def test_transaction_request_without_contract_uses_function_name():
    assert TransactionRequest("startup", "", "GetAllCampaigns").qualified_name == "GetAllCampaigns"


@pytest.mark.parametrize(
    "args",
    [
        ["INV1", 5000],
        ["INV1", None],
        ["INV1", True],
        "INV1",
    ],
)
def test_transaction_request_rejects_non_string_args(args):
    with pytest.raises(ValueError):
        TransactionRequest("investor", "InvestorContract", "MakeInvestment", args)


def test_transaction_request_requires_function_name():
    with pytest.raises(ValueError):
        TransactionRequest("investor", "InvestorContract", "")


def test_transaction_request_rejects_non_string_transient():
    with pytest.raises(ValueError):
        TransactionRequest("startup", "StartupContract", "StorePrivate", (), {"amount": 10})


def test_identity_document_layout():
    doc = {
        "credentials": {"certificate": "CERT", "privateKey": "KEY"},
        "mspId": "InvestorOrgMSP",
        "type": "X.509",
        "version": 1,
    }
    identity = X509Identity.from_document(doc)
    assert identity.msp_id == "InvestorOrgMSP"
    assert identity.private_key == "KEY"
    assert identity.to_document() == doc
    assert "KEY" not in repr(identity)


def test_normalize_submit_result():
    assert normalize_submit_result(None) == {"success": True}
    assert normalize_submit_result("") == {"success": True}
    assert normalize_submit_result(b"") == {"success": True}
    assert normalize_submit_result('{"id": "C1"}') == {"id": "C1"}
    assert normalize_submit_result("[1, 2]") == [1, 2]
    assert normalize_submit_result("done") == {"success": True, "message": "done"}


def test_normalize_submit_result_returns_fresh_marker():
    first = normalize_submit_result("")
    first["extra"] = 1
    assert normalize_submit_result("") == {"success": True}


def test_normalize_evaluate_result():
    assert normalize_evaluate_result(None) == []
    assert normalize_evaluate_result(b"") == []
    assert normalize_evaluate_result('[{"id": "C1"}]') == [{"id": "C1"}]
    assert normalize_evaluate_result('{"id": "C1"}') == {"id": "C1"}
    assert normalize_evaluate_result("plain text") == {"success": True, "message": "plain text"}


@pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", '{"ratio": NaN}', '[1, Infinity]'])
def test_non_standard_json_constants_are_wrapped(text):
    assert normalize_evaluate_result(text) == {"success": True, "message": text}
    assert normalize_submit_result(text) == {"success": True, "message": text}
