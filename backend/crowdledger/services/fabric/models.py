"""
models.py — Value types shared by the gateway, wallet and ledger binding.

- OrganizationProfile / DiscoveryOptions: static, immutable routing config.
- X509Identity: the wallet `.id` document.
- Connection: the cached network + contract handle pair for one organization.
- TransactionRequest: one chaincode call, string arguments only.
- normalize_submit_result / normalize_evaluate_result: raw payload → result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Tuple, Union

Payload = Union[bytes, str, None]

SUCCESS_MARKER: Dict[str, Any] = {"success": True}


@dataclass(frozen=True)
class DiscoveryOptions:
    """
    Endorsement routing and wait windows for one organization.

    enabled=False endorses on the organization's own peers only; enabled=True
    considers every peer on the channel. Timeouts are in seconds.
    """
    enabled: bool = False
    as_localhost: bool = False
    commit_timeout: float = 30.0
    endorse_timeout: float = 30.0


@dataclass(frozen=True)
class OrganizationProfile:
    """Identity an operation runs as. Loaded once at process start."""
    key: str
    name: str
    msp_id: str
    admin_user: str
    wallet_path: Path
    profile_path: Path
    channel_name: str
    chaincode_name: str
    discovery: DiscoveryOptions = field(default_factory=DiscoveryOptions)
    ca_url: Optional[str] = None
    admin_secret: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class X509Identity:
    """fabric-network wallet identity (`{credentials, mspId, type, version}`)."""
    msp_id: str
    certificate: str
    private_key: str = field(repr=False)
    type: str = "X.509"
    version: int = 1

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "X509Identity":
        credentials = doc["credentials"]
        return cls(
            msp_id=doc["mspId"],
            certificate=credentials["certificate"],
            private_key=credentials["privateKey"],
            type=doc.get("type", "X.509"),
            version=int(doc.get("version", 1)),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "credentials": {
                "certificate": self.certificate,
                "privateKey": self.private_key,
            },
            "mspId": self.msp_id,
            "type": self.type,
            "version": self.version,
        }


# -----------------------------------------------------------------------------
# Ledger binding contracts
# -----------------------------------------------------------------------------

class ContractHandle(Protocol):
    async def submit(
        self,
        fcn: str,
        args: Sequence[str],
        endorsing_orgs: Sequence[str] = (),
        transient: Optional[Mapping[str, str]] = None,
    ) -> Payload: ...

    async def evaluate(self, fcn: str, args: Sequence[str]) -> Payload: ...


class NetworkHandle(Protocol):
    async def disconnect(self) -> None: ...


class Connector(Protocol):
    async def connect(
        self,
        profile: OrganizationProfile,
        identity: X509Identity,
        connection_profile: Any,
    ) -> "Connection": ...


@dataclass
class Connection:
    """Live binding between one organization and the channel's chaincode."""
    org_key: str
    network: NetworkHandle
    contract: ContractHandle

    async def close(self) -> None:
        await self.network.disconnect()


@dataclass(frozen=True)
class TransactionRequest:
    """
    A single chaincode call routed through one organization.

    Arguments cross this boundary as strings only; numbers and JSON values
    must be serialized by the caller.
    """
    org_key: str
    contract_name: str
    function_name: str
    args: Tuple[str, ...] = ()
    transient: Optional[Mapping[str, str]] = None

    def __post_init__(self) -> None:
        if not self.function_name:
            raise ValueError("function_name must be non-empty")
        if isinstance(self.args, (str, bytes)):
            raise ValueError("args must be a sequence of strings, not a single string")
        args = tuple(self.args)
        for index, arg in enumerate(args):
            if not isinstance(arg, str):
                raise ValueError(
                    f"argument {index} of {self.qualified_name} is {type(arg).__name__}; "
                    "stringify values before dispatch"
                )
        object.__setattr__(self, "args", args)
        if self.transient is not None:
            for key, value in self.transient.items():
                if not isinstance(value, str):
                    raise ValueError(f"transient field {key!r} must be a string")

    @property
    def qualified_name(self) -> str:
        if not self.contract_name:
            return self.function_name
        return f"{self.contract_name}:{self.function_name}"


# -----------------------------------------------------------------------------
# Result normalization
# -----------------------------------------------------------------------------

def _as_text(raw: Payload) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def _parse_or_wrap(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return {"success": True, "message": text}


def normalize_submit_result(raw: Payload) -> Any:
    """Empty → {"success": True}; JSON → parsed value; other → message wrapper."""
    text = _as_text(raw)
    if not text:
        return dict(SUCCESS_MARKER)
    return _parse_or_wrap(text)


def normalize_evaluate_result(raw: Payload) -> Any:
    """Queries return lists: empty → []; JSON → parsed value; other → message wrapper."""
    text = _as_text(raw)
    if not text:
        return []
    return _parse_or_wrap(text)
