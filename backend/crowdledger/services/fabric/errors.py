"""
errors.py — Exception taxonomy for the Fabric gateway layer.

Every failure the gateway surfaces is a `GatewayError`; the HTTP layer maps
the concrete classes to status codes. Lower layers (wallet, peer CLI) raise
their own errors, which the gateway wraps before they reach a caller.
"""

from typing import Optional


class GatewayError(RuntimeError):
    """Base exception for gateway failures."""


class UnknownOrganization(GatewayError):
    """Raised when an organization key is not in the static configuration."""

    def __init__(self, org_key: str):
        super().__init__(f"Unknown organization: {org_key}")
        self.org_key = org_key


class IdentityNotFound(GatewayError):
    """Raised when the organization's admin identity is absent from its wallet."""

    def __init__(self, org_key: str, label: str, detail: Optional[str] = None):
        message = f"Identity {label} not found in wallet for {org_key}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.org_key = org_key
        self.label = label


class ProfileLoadError(GatewayError):
    """Raised when a connection profile document is missing or malformed."""

    def __init__(self, path: str, detail: str):
        super().__init__(f"Failed to load connection profile {path}: {detail}")
        self.path = path


class TransactionFailed(GatewayError):
    """
    Raised for any connect / submit / evaluate failure after the organization
    resolved. Carries the underlying ledger message unchanged in `reason`.
    """

    def __init__(self, org_key: str, function: str, reason: str):
        super().__init__(reason)
        self.org_key = org_key
        self.function = function
        self.reason = reason


class WalletError(RuntimeError):
    """Raised when a wallet entry exists but cannot be read."""


class LedgerCommandError(RuntimeError):
    """Raised when a ledger call (peer CLI invocation) exits unsuccessfully."""


class ConnectionFailed(LedgerCommandError):
    """Raised when no usable peer/orderer can be derived for a connection."""
