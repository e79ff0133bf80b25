"""
peer_cli.py — Ledger binding that drives the Fabric `peer` CLI.

MVP Responsibilities:
- Turn a wallet identity + connection profile into a private MSP directory
  the peer binary can sign with.
- Run `peer chaincode invoke` (submit) and `peer chaincode query` (evaluate)
  as asyncio subprocesses, so concurrent requests never block each other.
- Extract the chaincode payload from the CLI output.

The Python Fabric SDK is not used; the peer binary is the supported client
and gives us endorsement targeting (--peerAddresses), commit waiting
(--waitForEvent) and transient data (--transient) directly.
"""

from __future__ import annotations

import ast
import asyncio
import base64
import json
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from crowdledger.core.logging import get_logger, preview
from crowdledger.services.fabric.errors import ConnectionFailed, LedgerCommandError
from crowdledger.services.fabric.models import (
    Connection,
    DiscoveryOptions,
    OrganizationProfile,
    X509Identity,
)
from crowdledger.services.fabric.profile import ConnectionProfile, PeerEndpoint

logger = get_logger(__name__)

Runner = Callable[[Sequence[str], Mapping[str, str]], Awaitable[Tuple[str, str]]]

# protobuf text output separates fields with one or more spaces
INVOKE_RESULT_RE = re.compile(
    r'Chaincode invoke successful\. result: status:(?P<status>\d+)'
    r'(?:\s+payload:\s*"(?P<payload>(?:[^"\\]|\\.)*)")?'
)


async def run_peer_command(cmd: Sequence[str], env: Mapping[str, str]) -> Tuple[str, str]:
    """Run one peer CLI command; return (stdout, stderr) or raise LedgerCommandError."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            env=dict(env),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise LedgerCommandError(f"Cannot start {cmd[0]}: {e}") from e

    out, err = await proc.communicate()
    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        message = stderr.strip().splitlines()[-1] if stderr.strip() else f"exit status {proc.returncode}"
        raise LedgerCommandError(message)
    return stdout, stderr


def decode_text_escapes(escaped: str) -> str:
    """Decode a protobuf text-format quoted string body (\\", \\\\, \\n, octal)."""
    try:
        return ast.literal_eval(f'b"{escaped}"').decode("utf-8", errors="replace")
    except (SyntaxError, ValueError):
        return escaped


def extract_invoke_payload(output: str) -> str:
    """
    Pull the payload out of `Chaincode invoke successful. result: status:200 payload:"..."`.

    A successful invoke without a payload field returns "" (empty response).
    """
    match = INVOKE_RESULT_RE.search(output)
    if match is None:
        raise LedgerCommandError(f"Unrecognised invoke output: {preview(output.strip(), 200)}")
    status = int(match.group("status"))
    if status >= 400:
        raise LedgerCommandError(f"Chaincode returned status {status}")
    payload = match.group("payload")
    if payload is None and "payload:" in output[match.end():].split("\n", 1)[0]:
        raise LedgerCommandError(f"Unparseable invoke payload: {preview(output.strip(), 200)}")
    return decode_text_escapes(payload) if payload else ""


def ctor_message(fcn: str, args: Sequence[str]) -> str:
    return json.dumps({"function": fcn, "Args": list(args)})


def _seconds(value: float) -> str:
    return f"{int(value) if float(value).is_integer() else value}s"


@dataclass(frozen=True)
class EndorsingPeer:
    endpoint: PeerEndpoint
    msp_id: Optional[str]
    tls_file: Optional[Path]


@dataclass
class PeerCliNetwork:
    """Owns the materialised MSP/TLS directory for one connection."""
    root: Path
    closed: bool = False

    async def disconnect(self) -> None:
        if self.closed:
            return
        shutil.rmtree(self.root, ignore_errors=True)
        self.closed = True
        logger.debug("Removed connection material %s", self.root)


@dataclass
class PeerCliContract:
    """Contract handle bound to one channel + chaincode through the peer binary."""
    peer_binary: str
    channel: str
    chaincode: str
    env: Dict[str, str]
    peers: List[EndorsingPeer]
    options: DiscoveryOptions
    orderer: Optional[PeerEndpoint] = None
    orderer_tls_file: Optional[Path] = None
    runner: Runner = field(default=run_peer_command)

    def _targets(self, endorsing_orgs: Sequence[str]) -> List[EndorsingPeer]:
        if not endorsing_orgs:
            return list(self.peers)
        wanted = set(endorsing_orgs)
        return [p for p in self.peers if p.msp_id in wanted]

    def _orderer_args(self) -> List[str]:
        if self.orderer is None:
            # peer CLI falls back to the orderer endpoints in the channel config
            return []
        args = ["-o", self.orderer.address]
        if self.orderer.hostname_override:
            args += ["--ordererTLSHostnameOverride", self.orderer.hostname_override]
        if self.orderer.tls:
            args.append("--tls")
            if self.orderer_tls_file is not None:
                args += ["--cafile", str(self.orderer_tls_file)]
        return args

    def build_invoke(
        self,
        fcn: str,
        args: Sequence[str],
        endorsing_orgs: Sequence[str] = (),
        transient: Optional[Mapping[str, str]] = None,
    ) -> List[str]:
        targets = self._targets(endorsing_orgs)
        if not targets:
            raise LedgerCommandError(
                f"No peers for endorsing organizations {', '.join(endorsing_orgs)}"
            )
        cmd = [
            self.peer_binary, "chaincode", "invoke",
            "-C", self.channel,
            "-n", self.chaincode,
            "-c", ctor_message(fcn, args),
            "--waitForEvent",
            "--waitForEventTimeout", _seconds(self.options.commit_timeout),
            "--connTimeout", _seconds(self.options.endorse_timeout),
        ]
        for peer in targets:
            cmd += ["--peerAddresses", peer.endpoint.address]
            if peer.tls_file is not None:
                cmd += ["--tlsRootCertFiles", str(peer.tls_file)]
        cmd += self._orderer_args()
        if transient:
            encoded = {k: base64.b64encode(v.encode("utf-8")).decode("ascii") for k, v in transient.items()}
            cmd += ["--transient", json.dumps(encoded)]
        return cmd

    def build_query(self, fcn: str, args: Sequence[str]) -> List[str]:
        return [
            self.peer_binary, "chaincode", "query",
            "-C", self.channel,
            "-n", self.chaincode,
            "-c", ctor_message(fcn, args),
        ]

    async def submit(
        self,
        fcn: str,
        args: Sequence[str],
        endorsing_orgs: Sequence[str] = (),
        transient: Optional[Mapping[str, str]] = None,
    ) -> str:
        cmd = self.build_invoke(fcn, args, endorsing_orgs, transient)
        stdout, stderr = await self.runner(cmd, self.env)
        # The CLI logs the invoke result on stderr
        return extract_invoke_payload(stderr + "\n" + stdout)

    async def evaluate(self, fcn: str, args: Sequence[str]) -> str:
        stdout, _ = await self.runner(self.build_query(fcn, args), self.env)
        return stdout[:-1] if stdout.endswith("\n") else stdout


class PeerCliConnector:
    """
    Establish peer-CLI connections.

    Discovery disabled: endorsement candidates are the organization's own
    peers. Discovery enabled: every peer on the channel. Submit still narrows
    to the endorsing organizations the gateway asks for.
    """

    def __init__(
        self,
        peer_binary: str = "peer",
        fabric_cfg_path: str = "",
        work_dir: Optional[str] = None,
        base_env: Optional[Mapping[str, str]] = None,
        runner: Runner = run_peer_command,
    ):
        self.peer_binary = peer_binary
        self.fabric_cfg_path = fabric_cfg_path
        self.work_dir = work_dir or None
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.runner = runner

    async def connect(
        self,
        profile: OrganizationProfile,
        identity: X509Identity,
        connection_profile: ConnectionProfile,
    ) -> Connection:
        options = profile.discovery
        org_name = connection_profile.organization_for_msp(profile.msp_id) or profile.name
        own = connection_profile.organization_peers(org_name)
        names = list(own)
        if options.enabled:
            names += [n for n in connection_profile.channel_peers(profile.channel_name) if n not in own]

        endpoints: List[Tuple[PeerEndpoint, Optional[str]]] = []
        for name in names:
            ep = connection_profile.peer_endpoint(name, options.as_localhost)
            if ep is None:
                continue
            msp = profile.msp_id if name in own else connection_profile.peer_msp(name)
            endpoints.append((ep, msp))
        local = [ep for ep, msp in endpoints if msp == profile.msp_id]
        if not local:
            raise ConnectionFailed(
                f"Connection profile {connection_profile.path} lists no reachable peer for {org_name}"
            )

        root = Path(tempfile.mkdtemp(prefix=f"crowdledger-{profile.key}-", dir=self.work_dir))
        try:
            msp_dir = self._write_msp(root, identity, connection_profile)
            peers = [
                EndorsingPeer(ep, msp, self._write_tls(root, ep))
                for ep, msp in endpoints
            ]
            orderer = connection_profile.orderer_endpoint(profile.channel_name, options.as_localhost)
            orderer_tls = self._write_tls(root, orderer) if orderer is not None else None
        except OSError as e:
            shutil.rmtree(root, ignore_errors=True)
            raise ConnectionFailed(f"Cannot materialise MSP for {profile.key}: {e}") from e

        anchor = next(p for p in peers if p.endpoint is local[0])
        env = self._env(profile, msp_dir, anchor)
        contract = PeerCliContract(
            peer_binary=self.peer_binary,
            channel=profile.channel_name,
            chaincode=profile.chaincode_name,
            env=env,
            peers=peers,
            options=options,
            orderer=orderer,
            orderer_tls_file=orderer_tls,
            runner=self.runner,
        )
        logger.info(
            "Peer CLI connection for %s ready (%d endorsing peer(s), discovery=%s)",
            profile.key, len(peers), options.enabled,
        )
        return Connection(org_key=profile.key, network=PeerCliNetwork(root), contract=contract)

    # ------------------------------------------------------------------ #
    # Material helpers
    # ------------------------------------------------------------------ #

    def _write_msp(self, root: Path, identity: X509Identity, connection_profile: ConnectionProfile) -> Path:
        msp = root / "msp"
        files = {
            msp / "signcerts" / "cert.pem": identity.certificate,
            msp / "keystore" / "priv_sk": identity.private_key,
            msp / "cacerts" / "ca.pem": connection_profile.ca_pem() or identity.certificate,
        }
        for path, content in files.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        os.chmod(msp / "keystore" / "priv_sk", 0o600)
        return msp

    def _write_tls(self, root: Path, endpoint: PeerEndpoint) -> Optional[Path]:
        if not endpoint.tls or not endpoint.tls_pem:
            return None
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", endpoint.name)
        path = root / "tls" / f"{safe}.pem"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(endpoint.tls_pem, encoding="utf-8")
        return path

    def _env(self, profile: OrganizationProfile, msp_dir: Path, anchor: EndorsingPeer) -> Dict[str, str]:
        env = dict(self.base_env)
        env.update({
            "CORE_PEER_LOCALMSPID": profile.msp_id,
            "CORE_PEER_MSPCONFIGPATH": str(msp_dir),
            "CORE_PEER_ADDRESS": anchor.endpoint.address,
            "CORE_PEER_TLS_ENABLED": "true" if anchor.endpoint.tls else "false",
        })
        if anchor.tls_file is not None:
            env["CORE_PEER_TLS_ROOTCERT_FILE"] = str(anchor.tls_file)
        if anchor.endpoint.hostname_override:
            env["CORE_PEER_TLS_SERVERHOSTOVERRIDE"] = anchor.endpoint.hostname_override
        if self.fabric_cfg_path:
            env["FABRIC_CFG_PATH"] = self.fabric_cfg_path
        return env
