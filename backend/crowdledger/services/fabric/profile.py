"""
profile.py — Connection profile (common connection profile JSON) loader.

Purpose:
- Load the per-organization gateway documents (`_gateways/*.json`).
- Answer the routing questions the peer CLI binding needs: which peers belong
  to an organization or channel, their endpoints and TLS roots, the orderer.

This module does NOT:
- Connect to anything.
- Validate certificates (PEM blocks are passed through as-is).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from crowdledger.services.fabric.errors import ProfileLoadError

LOCALHOST = "localhost"


def _pem(value: Any) -> Optional[str]:
    """tlsCACerts.pem may be a single PEM string or a list of them."""
    if isinstance(value, list):
        value = "\n".join(str(v).strip() for v in value if v)
    if isinstance(value, str) and value.strip():
        return value.strip() + "\n"
    return None


@dataclass(frozen=True)
class PeerEndpoint:
    name: str
    address: str
    tls: bool
    tls_pem: Optional[str]
    hostname_override: Optional[str]


@dataclass(frozen=True)
class ConnectionProfile:
    """Parsed connection profile document."""
    path: Path
    document: Dict[str, Any]

    @property
    def name(self) -> str:
        return str(self.document.get("name", self.path.stem))

    def _section(self, key: str) -> Dict[str, Any]:
        section = self.document.get(key) or {}
        return section if isinstance(section, dict) else {}

    # ------------------------------------------------------------------ #
    # Peers
    # ------------------------------------------------------------------ #

    def organization_peers(self, org_name: str) -> List[str]:
        org = self._section("organizations").get(org_name) or {}
        return list(org.get("peers") or [])

    def organization_for_msp(self, msp_id: str) -> Optional[str]:
        for name, org in self._section("organizations").items():
            if isinstance(org, dict) and org.get("mspid") == msp_id:
                return name
        return None

    def channel_peers(self, channel: str) -> List[str]:
        """All peers listed for the channel, or every known peer when the profile omits channels."""
        chan = self._section("channels").get(channel) or {}
        peers = chan.get("peers")
        if isinstance(peers, dict):
            return list(peers.keys())
        if isinstance(peers, list):
            return list(peers)
        return list(self._section("peers").keys())

    def peer_msp(self, peer_name: str) -> Optional[str]:
        for org in self._section("organizations").values():
            if isinstance(org, dict) and peer_name in (org.get("peers") or []):
                return org.get("mspid")
        return None

    def peer_endpoint(self, peer_name: str, as_localhost: bool = False) -> Optional[PeerEndpoint]:
        peer = self._section("peers").get(peer_name)
        if not isinstance(peer, dict) or not peer.get("url"):
            return None
        return self._endpoint(peer_name, peer, as_localhost)

    # ------------------------------------------------------------------ #
    # Orderer / CA
    # ------------------------------------------------------------------ #

    def orderer_endpoint(self, channel: str, as_localhost: bool = False) -> Optional[PeerEndpoint]:
        orderers = self._section("orderers")
        names = list((self._section("channels").get(channel) or {}).get("orderers") or []) or list(orderers)
        for name in names:
            entry = orderers.get(name)
            if isinstance(entry, dict) and entry.get("url"):
                return self._endpoint(name, entry, as_localhost)
        return None

    def ca_pem(self) -> Optional[str]:
        for ca in self._section("certificateAuthorities").values():
            if isinstance(ca, dict):
                pem = _pem((ca.get("tlsCACerts") or {}).get("pem"))
                if pem:
                    return pem
        return None

    def _endpoint(self, name: str, entry: Dict[str, Any], as_localhost: bool) -> PeerEndpoint:
        url = str(entry["url"])
        parsed = urlparse(url if "://" in url else f"grpc://{url}")
        host = parsed.hostname or name
        port = parsed.port
        override = (entry.get("grpcOptions") or {}).get("ssl-target-name-override")
        if as_localhost:
            override = override or host
            host = LOCALHOST
        address = f"{host}:{port}" if port else host
        return PeerEndpoint(
            name=name,
            address=address,
            tls=parsed.scheme == "grpcs",
            tls_pem=_pem((entry.get("tlsCACerts") or {}).get("pem")),
            hostname_override=override,
        )


def load_connection_profile(path: Union[str, Path]) -> ConnectionProfile:
    """
    Read and parse a connection profile.

    Raises:
        ProfileLoadError if the file is missing, unreadable, or not a JSON object.
    """
    profile_path = Path(path).expanduser()
    if not profile_path.is_file():
        raise ProfileLoadError(str(profile_path), "file not found")
    try:
        with profile_path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, ValueError) as e:
        raise ProfileLoadError(str(profile_path), str(e)) from e
    if not isinstance(document, dict):
        raise ProfileLoadError(str(profile_path), "document is not a JSON object")
    return ConnectionProfile(path=profile_path, document=document)
