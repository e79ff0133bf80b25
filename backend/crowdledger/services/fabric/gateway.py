"""
gateway.py — Per-organization Fabric gateway with transaction dispatch.

Responsibilities:
- Resolve an organization key to a live Connection, establishing it on first
  use (wallet identity → connection profile → connector) and caching it.
- Guard cold-cache resolution with a single in-flight task per key, so
  concurrent first requests share one network session.
- Dispatch submit (state-changing, endorsed by the calling organization only)
  and evaluate (read-only) calls and normalize the raw chaincode payload.

Lifecycle per organization key: Unresolved → Resolving → Connected, and back
to Unresolved only through disconnect()/shutdown(). There is no automatic
reconnect: a dead cached session fails at the ledger call as TransactionFailed.

This module does NOT:
- Retry failed transactions (callers decide).
- Substitute empty results for failed queries (an HTTP-layer policy).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from crowdledger.core.logging import get_logger, preview
from crowdledger.services.fabric.errors import (
    GatewayError,
    IdentityNotFound,
    TransactionFailed,
    UnknownOrganization,
    WalletError,
)
from crowdledger.services.fabric.models import (
    Connection,
    Connector,
    OrganizationProfile,
    TransactionRequest,
    normalize_evaluate_result,
    normalize_submit_result,
)
from crowdledger.services.fabric.profile import load_connection_profile
from crowdledger.services.fabric.wallet import FileSystemWallet

logger = get_logger(__name__)


class OrgConnectionGateway:
    """
    Owns at most one Connection per organization key.

    Construct one per process and close it with shutdown(); the hosting app's
    startup/shutdown sequence owns that lifetime.
    """

    def __init__(
        self,
        profiles: Mapping[str, OrganizationProfile],
        connector: Connector,
        wallet_factory: Callable[[Path], Any] = FileSystemWallet,
        profile_loader: Callable[[Path], Any] = load_connection_profile,
    ):
        self._profiles: Dict[str, OrganizationProfile] = dict(profiles)
        self._connector = connector
        self._wallet_factory = wallet_factory
        self._profile_loader = profile_loader
        self._connections: Dict[str, Connection] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    # --------------------------------------------------------------------- #
    # Organization lookup
    # --------------------------------------------------------------------- #

    @property
    def organizations(self) -> List[str]:
        return sorted(self._profiles)

    def profile(self, org_key: str) -> OrganizationProfile:
        try:
            return self._profiles[org_key]
        except KeyError:
            raise UnknownOrganization(org_key) from None

    def connected_organizations(self) -> List[str]:
        return sorted(self._connections)

    # --------------------------------------------------------------------- #
    # Connection resolution
    # --------------------------------------------------------------------- #

    async def resolve_connection(self, org_key: str) -> Connection:
        """
        Return the cached Connection for `org_key`, establishing it if absent.

        Raises:
            UnknownOrganization, IdentityNotFound, ProfileLoadError, TransactionFailed
        """
        profile = self.profile(org_key)

        cached = self._connections.get(org_key)
        if cached is not None:
            logger.debug("Using cached connection for org: %s", org_key)
            return cached

        pending = self._pending.get(org_key)
        if pending is None:
            pending = asyncio.ensure_future(self._establish(profile))
            self._pending[org_key] = pending
            pending.add_done_callback(lambda task, key=org_key: self._clear_pending(key, task))
        # shield: a cancelled caller must not cancel the shared resolution
        return await asyncio.shield(pending)

    def _clear_pending(self, org_key: str, task: asyncio.Task) -> None:
        if self._pending.get(org_key) is task:
            del self._pending[org_key]

    async def _establish(self, profile: OrganizationProfile) -> Connection:
        key = profile.key
        logger.info("Loading wallet from: %s", profile.wallet_path)
        wallet = self._wallet_factory(profile.wallet_path)
        try:
            identity = await wallet.get(profile.admin_user)
        except WalletError as e:
            raise IdentityNotFound(key, profile.admin_user, str(e)) from e
        if identity is None:
            raise IdentityNotFound(key, profile.admin_user)
        logger.info("Found identity: %s", profile.admin_user)

        logger.info("Loading gateway from: %s", profile.profile_path)
        connection_profile = self._profile_loader(profile.profile_path)

        try:
            connection = await self._connector.connect(profile, identity, connection_profile)
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Failed to connect to %s: %s", profile.name, e)
            raise TransactionFailed(key, "connect", str(e)) from e

        self._connections[key] = connection
        logger.info(
            "Connected to %s (channel=%s, chaincode=%s)",
            profile.name, profile.channel_name, profile.chaincode_name,
        )
        return connection

    # --------------------------------------------------------------------- #
    # Transaction dispatch
    # --------------------------------------------------------------------- #

    async def submit(
        self,
        org_key: str,
        contract_name: str,
        function_name: str,
        args: Sequence[str] = (),
        transient: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        Invoke a state-changing transaction and wait for commit.

        Endorsement is pinned to the calling organization's MSP: private data
        collections are not guaranteed in sync across organizations at
        submission time, so other orgs' peers would produce mismatched
        read/write sets.

        Returns the parsed JSON payload, {"success": True} for an empty
        payload, or {"success": True, "message": raw} for non-JSON text.
        """
        request = TransactionRequest(org_key, contract_name, function_name, tuple(args), transient)
        connection = await self.resolve_connection(org_key)
        msp_id = self._profiles[org_key].msp_id
        fcn = request.qualified_name

        logger.info("Submit: %s | Org: %s | MSP: %s | Args: %s", fcn, org_key, msp_id, preview(list(request.args)))
        try:
            raw = await connection.contract.submit(
                fcn, request.args, endorsing_orgs=[msp_id], transient=request.transient
            )
        except Exception as e:
            logger.error("Submit failed: %s | Org: %s | %s", fcn, org_key, e)
            raise TransactionFailed(org_key, fcn, str(e)) from e

        logger.info("Result: %s", preview(raw or ""))
        return normalize_submit_result(raw)

    async def evaluate(
        self,
        org_key: str,
        contract_name: str,
        function_name: str,
        args: Sequence[str] = (),
    ) -> Any:
        """
        Run a read-only query. An empty payload normalizes to [] (queries
        return lists), otherwise the same rules as submit().
        """
        request = TransactionRequest(org_key, contract_name, function_name, tuple(args))
        connection = await self.resolve_connection(org_key)
        fcn = request.qualified_name

        logger.info("Query: %s | Org: %s | Args: %s", fcn, org_key, preview(list(request.args)))
        try:
            raw = await connection.contract.evaluate(fcn, request.args)
        except Exception as e:
            logger.error("Query failed: %s | Org: %s | %s", fcn, org_key, e)
            raise TransactionFailed(org_key, fcn, str(e)) from e

        logger.info("Result: %s", preview(raw or ""))
        return normalize_evaluate_result(raw)

    # --------------------------------------------------------------------- #
    # Teardown
    # --------------------------------------------------------------------- #

    async def disconnect(self, org_key: str) -> None:
        """Close and forget one organization's connection; next call re-resolves."""
        self.profile(org_key)
        connection = self._connections.pop(org_key, None)
        if connection is not None:
            await self._close(org_key, connection)

    async def shutdown(self) -> None:
        """Close every cached connection and clear the cache. Idempotent."""
        if self._pending:
            await asyncio.gather(*self._pending.values(), return_exceptions=True)
        connections = list(self._connections.items())
        self._connections.clear()
        for org_key, connection in connections:
            await self._close(org_key, connection)

    async def _close(self, org_key: str, connection: Connection) -> None:
        try:
            await connection.close()
            logger.info("Disconnected from %s", org_key)
        except Exception as e:
            logger.warning("Error while disconnecting %s: %s", org_key, e)
