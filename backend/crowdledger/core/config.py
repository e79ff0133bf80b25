"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for gateway settings.
- Load and validate environment variables from `.env` or OS environment.
- Build the static organization table (one OrganizationProfile per org key)
  that the Fabric gateway routes transactions through.

Core Workflow:
1. Read Fabric locations (wallets, connection profiles, peer CLI) from env.
2. Derive per-organization discovery/timeout options (explicit, never implied).
3. Hand the immutable organization table to the gateway at startup.

This module does NOT:
- Open any network connection.
- Read wallets or connection profiles (see services/fabric).
- Modify runtime settings after import.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crowdledger.services.fabric.models import DiscoveryOptions, OrganizationProfile

# config.py is at: backend/crowdledger/core/config.py
# .env should be at: backend/.env
_CONFIG_DIR = Path(__file__).parent
_BACKEND_DIR = _CONFIG_DIR.parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    _ENV_FILE_PATH = str(_ENV_FILE.resolve())
else:
    # Fallback: pydantic will look in CWD
    _ENV_FILE_PATH = ".env"

DEV_TIMEOUT_SECONDS = 30.0
PROD_TIMEOUT_SECONDS = 300.0

# -----------------------------------------------------------------------------
# Built-in organization table (crowdfunding network)
# -----------------------------------------------------------------------------

DEFAULT_ORGANIZATIONS: Dict[str, Dict[str, str]] = {
    "startup": {
        "name": "StartupOrg",
        "msp_id": "StartupOrgMSP",
        "ca_url": "http://startuporgca-api.127-0-0-1.nip.io:9090",
        "gateway_file": "startuporggateway.json",
        "admin_user": "startuporgadmin",
        "admin_secret": "startuporgadminpw",
    },
    "investor": {
        "name": "InvestorOrg",
        "msp_id": "InvestorOrgMSP",
        "ca_url": "http://investororgca-api.127-0-0-1.nip.io:9090",
        "gateway_file": "investororggateway.json",
        "admin_user": "investororgadmin",
        "admin_secret": "investororgadminpw",
    },
    "platform": {
        "name": "PlatformOrg",
        "msp_id": "PlatformOrgMSP",
        "ca_url": "http://platformorgca-api.127-0-0-1.nip.io:9090",
        "gateway_file": "platformorggateway.json",
        "admin_user": "platformorgadmin",
        "admin_secret": "platformorgadminpw",
    },
    "validator": {
        "name": "ValidatorOrg",
        "msp_id": "ValidatorOrgMSP",
        "ca_url": "http://validatororgca-api.127-0-0-1.nip.io:9090",
        "gateway_file": "validatororggateway.json",
        "admin_user": "validatororgadmin",
        "admin_secret": "validatororgadminpw",
    },
}


class Settings(BaseSettings):
    """
    Gateway settings container.

    Fabric paths default to the sibling `_wallets` / `_gateways` directories
    produced by the local network tooling.
    """
    APP_ENV: str = Field(
        "development",
        description="'development' or 'production' (controls default ledger timeouts)",
    )
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    # Fabric network
    FABRIC_CHANNEL_NAME: str = Field(
        "crowdfunding-channel",
        description="Channel every organization transacts on",
    )
    FABRIC_CHAINCODE_NAME: str = Field(
        "crowdfunding",
        description="Deployed chaincode package name",
    )
    FABRIC_WALLETS_DIR: str = Field(
        "../_wallets",
        description="Wallet root; each organization uses <dir>/<OrgName>",
    )
    FABRIC_GATEWAYS_DIR: str = Field(
        "../_gateways",
        description="Directory holding connection profile JSON documents",
    )
    FABRIC_ORGS_FILE: str = Field(
        "",
        description="Optional JSON file replacing the built-in organization table",
    )
    FABRIC_DISCOVERY_ENABLED: bool = Field(
        False,
        description="Endorse across all channel peers instead of the caller's own peers",
    )
    FABRIC_AS_LOCALHOST: bool = Field(
        False,
        description="Rewrite peer/orderer hostnames to localhost",
    )
    FABRIC_COMMIT_TIMEOUT_SECONDS: Optional[float] = Field(
        None,
        description="Commit wait window; defaults to 30s (development) or 300s (production)",
    )
    FABRIC_ENDORSE_TIMEOUT_SECONDS: Optional[float] = Field(
        None,
        description="Endorsement connection window; same defaults as commit",
    )

    # Peer CLI
    PEER_BINARY: str = Field("peer", description="Path to the Fabric peer binary")
    FABRIC_CFG_PATH: str = Field(
        "",
        description="Directory containing core.yaml for the peer CLI",
    )
    FABRIC_WORK_DIR: str = Field(
        "",
        description="Where per-connection MSP material is materialised (default: system temp)",
    )

    # Fabric CA enrollment
    CA_REQUEST_TIMEOUT_SECONDS: int = Field(30, description="HTTP timeout for CA requests")
    CA_MAX_RETRIES: int = Field(3, description="Maximum retry attempts for CA requests")
    CA_BACKOFF_BASE: float = Field(0.5, description="Exponential backoff base for CA retries")

    # API
    AUTH_ENABLED: bool = Field(True, description="Require bearer tokens on API routes")
    JWT_SECRET_KEY: str = Field(
        "your-secret-key-change-in-production",
        description="HS256 signing secret shared with the auth service",
    )
    JWT_EXPIRE_MINUTES: int = Field(60 * 24 * 7, description="Access token lifetime")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("APP_ENV", "LOG_LEVEL", mode="before")
    @classmethod
    def strip_value(cls, v: Any) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    def default_discovery(self) -> DiscoveryOptions:
        fallback = PROD_TIMEOUT_SECONDS if self.is_production else DEV_TIMEOUT_SECONDS
        return DiscoveryOptions(
            enabled=self.FABRIC_DISCOVERY_ENABLED,
            as_localhost=self.FABRIC_AS_LOCALHOST,
            commit_timeout=self.FABRIC_COMMIT_TIMEOUT_SECONDS or fallback,
            endorse_timeout=self.FABRIC_ENDORSE_TIMEOUT_SECONDS or fallback,
        )

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )


def _load_org_table(path: str) -> Dict[str, Dict[str, Any]]:
    org_path = Path(path).expanduser()
    if not org_path.exists():
        raise ValueError(f"Organization table not found: {org_path}")
    with org_path.open("r", encoding="utf-8") as fh:
        table = json.load(fh)
    if not isinstance(table, dict) or not table:
        raise ValueError(f"Organization table must be a non-empty JSON object: {org_path}")
    return table


def build_organization_profiles(config: Optional[Settings] = None) -> Dict[str, OrganizationProfile]:
    """
    Build the immutable organization-key → OrganizationProfile table.

    Entries may carry a `discovery` object overriding any of
    enabled / as_localhost / commit_timeout / endorse_timeout.
    """
    config = config or settings
    table = _load_org_table(config.FABRIC_ORGS_FILE) if config.FABRIC_ORGS_FILE else DEFAULT_ORGANIZATIONS
    wallets_dir = Path(config.FABRIC_WALLETS_DIR).expanduser().resolve()
    gateways_dir = Path(config.FABRIC_GATEWAYS_DIR).expanduser().resolve()
    defaults = config.default_discovery()

    profiles: Dict[str, OrganizationProfile] = {}
    for key, entry in table.items():
        overrides = entry.get("discovery") or {}
        discovery = DiscoveryOptions(
            enabled=bool(overrides.get("enabled", defaults.enabled)),
            as_localhost=bool(overrides.get("as_localhost", defaults.as_localhost)),
            commit_timeout=float(overrides.get("commit_timeout", defaults.commit_timeout)),
            endorse_timeout=float(overrides.get("endorse_timeout", defaults.endorse_timeout)),
        )
        profiles[key] = OrganizationProfile(
            key=key,
            name=entry["name"],
            msp_id=entry["msp_id"],
            admin_user=entry["admin_user"],
            wallet_path=wallets_dir / entry.get("wallet_dir", entry["name"]),
            profile_path=gateways_dir / entry["gateway_file"],
            channel_name=entry.get("channel_name", config.FABRIC_CHANNEL_NAME),
            chaincode_name=entry.get("chaincode_name", config.FABRIC_CHAINCODE_NAME),
            discovery=discovery,
            ca_url=entry.get("ca_url"),
            admin_secret=entry.get("admin_secret"),
        )
    return profiles


# Singleton: settings imported anywhere reference the same object.
settings = Settings()
