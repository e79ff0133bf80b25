"""
fabric package — Hyperledger Fabric access for the gateway service.

Expose the gateway, its value types and the peer CLI binding so the API layer
can import without touching concrete implementations directly.
"""

from .errors import (  # noqa: F401
    GatewayError,
    IdentityNotFound,
    ProfileLoadError,
    TransactionFailed,
    UnknownOrganization,
)
from .gateway import OrgConnectionGateway  # noqa: F401
from .models import DiscoveryOptions, OrganizationProfile, X509Identity  # noqa: F401
from .peer_cli import PeerCliConnector  # noqa: F401
from .wallet import FileSystemWallet  # noqa: F401
