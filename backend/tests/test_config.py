"""
Unit tests for settings-derived organization profiles.
"""

import json

import pytest

from crowdledger.core.config import Settings, build_organization_profiles


def make_settings(tmp_path, **overrides):
    values = {
        "FABRIC_WALLETS_DIR": str(tmp_path / "_wallets"),
        "FABRIC_GATEWAYS_DIR": str(tmp_path / "_gateways"),
        "FABRIC_ORGS_FILE": "",
        "APP_ENV": "development",
        "FABRIC_DISCOVERY_ENABLED": False,
        "FABRIC_AS_LOCALHOST": False,
        "FABRIC_COMMIT_TIMEOUT_SECONDS": None,
        "FABRIC_ENDORSE_TIMEOUT_SECONDS": None,
        "FABRIC_CHANNEL_NAME": "crowdfunding-channel",
        "FABRIC_CHAINCODE_NAME": "crowdfunding",
    }
    values.update(overrides)
    return Settings(**values)


def test_default_organization_table(tmp_path):
    profiles = build_organization_profiles(make_settings(tmp_path))

    assert sorted(profiles) == ["investor", "platform", "startup", "validator"]
    investor = profiles["investor"]
    assert investor.msp_id == "InvestorOrgMSP"
    assert investor.admin_user == "investororgadmin"
    assert investor.wallet_path == (tmp_path / "_wallets" / "InvestorOrg").resolve()
    assert investor.profile_path == (tmp_path / "_gateways" / "investororggateway.json").resolve()
    assert investor.channel_name == "crowdfunding-channel"
    assert investor.chaincode_name == "crowdfunding"
    assert investor.ca_url == "http://investororgca-api.127-0-0-1.nip.io:9090"


def test_development_timeouts(tmp_path):
    discovery = build_organization_profiles(make_settings(tmp_path))["startup"].discovery
    assert discovery.enabled is False
    assert discovery.commit_timeout == 30.0
    assert discovery.endorse_timeout == 30.0


def test_production_timeouts(tmp_path):
    discovery = build_organization_profiles(make_settings(tmp_path, APP_ENV="production"))["startup"].discovery
    assert discovery.commit_timeout == 300.0
    assert discovery.endorse_timeout == 300.0


def test_explicit_timeouts_win(tmp_path):
    config = make_settings(tmp_path, APP_ENV="production", FABRIC_COMMIT_TIMEOUT_SECONDS=45)
    discovery = build_organization_profiles(config)["platform"].discovery
    assert discovery.commit_timeout == 45.0
    assert discovery.endorse_timeout == 300.0


def test_organization_file_with_discovery_override(tmp_path):
    table = {
        "lender": {
            "name": "LenderOrg",
            "msp_id": "LenderOrgMSP",
            "gateway_file": "lender.json",
            "admin_user": "lenderadmin",
            "wallet_dir": "lender-wallet",
            "discovery": {"enabled": True, "as_localhost": True, "commit_timeout": 10},
        }
    }
    orgs_file = tmp_path / "orgs.json"
    orgs_file.write_text(json.dumps(table), encoding="utf-8")

    profiles = build_organization_profiles(make_settings(tmp_path, FABRIC_ORGS_FILE=str(orgs_file)))

    assert list(profiles) == ["lender"]
    lender = profiles["lender"]
    assert lender.wallet_path.name == "lender-wallet"
    assert lender.discovery.enabled is True
    assert lender.discovery.as_localhost is True
    assert lender.discovery.commit_timeout == 10.0
    assert lender.discovery.endorse_timeout == 30.0
    assert lender.ca_url is None


def test_missing_organization_file(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        build_organization_profiles(make_settings(tmp_path, FABRIC_ORGS_FILE=str(tmp_path / "none.json")))
