"""
enrollment.py — Fabric CA enrollment for organization admin identities.

MVP Responsibilities:
- Generate a P-256 key pair and CSR for an enrollment ID.
- Exchange it for a signed certificate through the CA REST API
  (`POST {ca_url}/api/v1/enroll`, HTTP basic auth).
- Store the resulting X.509 identity in the organization's wallet so the
  gateway can resolve it.
- Polite retry behavior on transient CA failures.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from crowdledger.core.config import settings
from crowdledger.core.logging import get_logger
from crowdledger.services.fabric.models import OrganizationProfile, X509Identity
from crowdledger.services.fabric.wallet import FileSystemWallet

logger = get_logger(__name__)

ENROLL_PATH = "/api/v1/enroll"
RETRY_STATUS_CODES = {500, 502, 503, 504}


class EnrollmentError(RuntimeError):
    """Base exception for CA enrollment failures."""


@dataclass(frozen=True)
class CAClientSettings:
    timeout_seconds: int
    max_retries: int
    backoff_base: float

    @classmethod
    def from_app_settings(cls) -> "CAClientSettings":
        return cls(
            timeout_seconds=settings.CA_REQUEST_TIMEOUT_SECONDS,
            max_retries=settings.CA_MAX_RETRIES,
            backoff_base=settings.CA_BACKOFF_BASE,
        )


def generate_csr(common_name: str) -> tuple[str, str]:
    """Return (private_key_pem, csr_pem) for a fresh P-256 key."""
    key = ec.generate_private_key(ec.SECP256R1())
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    csr_pem = csr.public_bytes(serialization.Encoding.PEM).decode("ascii")
    return key_pem, csr_pem


class CAClient:
    """
    Thin wrapper over `requests.Session` for the Fabric CA REST API.

    Blocking: enrollment runs once per organization from a script
    or a worker thread.
    """

    def __init__(self, session: Optional[requests.Session] = None, config: Optional[CAClientSettings] = None):
        self._session = session or requests.Session()
        self._config = config or CAClientSettings.from_app_settings()

    def enroll(
        self,
        ca_url: str,
        enrollment_id: str,
        secret: str,
        msp_id: str,
        ca_name: Optional[str] = None,
    ) -> X509Identity:
        """
        Enroll `enrollment_id` and return the signed identity.

        Raises:
            EnrollmentError if the CA rejects the request or answers garbage.
        """
        key_pem, csr_pem = generate_csr(enrollment_id)
        body: Dict[str, Any] = {"certificate_request": csr_pem}
        if ca_name:
            body["caname"] = ca_name

        response = self._post(ca_url.rstrip("/") + ENROLL_PATH, body, (enrollment_id, secret))
        if response.status_code >= 400:
            raise EnrollmentError(
                f"CA rejected enrollment of {enrollment_id} (status {response.status_code}): {response.text[:200]}"
            )
        try:
            payload = response.json()
            cert_b64 = payload["result"]["Cert"]
            certificate = base64.b64decode(cert_b64).decode("ascii")
        except (ValueError, KeyError, TypeError) as e:
            raise EnrollmentError(f"Malformed CA response for {enrollment_id}: {e}") from e
        if not payload.get("success", True):
            raise EnrollmentError(f"CA reported failure for {enrollment_id}: {payload.get('errors')}")

        return X509Identity(msp_id=msp_id, certificate=certificate, private_key=key_pem)

    def _post(self, url: str, body: Dict[str, Any], auth: tuple[str, str]) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self._config.max_retries)),
            wait=wait_exponential(multiplier=self._config.backoff_base, max=5),
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout, requests.HTTPError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self._post_once, url, body, auth)

    def _post_once(self, url: str, body: Dict[str, Any], auth: tuple[str, str]) -> requests.Response:
        logger.debug("Requesting %s", url)
        response = self._session.post(url, json=body, auth=auth, timeout=self._config.timeout_seconds)
        if response.status_code in RETRY_STATUS_CODES:
            msg = f"CA server error (status {response.status_code})"
            logger.warning("%s, retrying", msg)
            raise requests.HTTPError(msg, response=response)
        return response


async def enroll_admins(
    profiles: Mapping[str, OrganizationProfile],
    client: Optional[CAClient] = None,
    wallet_factory: Callable[[Any], Any] = FileSystemWallet,
) -> Dict[str, str]:
    """
    Enroll each organization's admin into its wallet.

    Already-enrolled admins are skipped; a failing organization is logged and
    the remaining ones still run.

    Returns:
        {org_key: "enrolled" | "exists" | "failed"}
    """
    client = client or CAClient()
    summary: Dict[str, str] = {}
    for key, profile in profiles.items():
        wallet = wallet_factory(profile.wallet_path)
        if await wallet.exists(profile.admin_user):
            logger.info("Admin %s already enrolled for %s", profile.admin_user, profile.name)
            summary[key] = "exists"
            continue
        if not profile.ca_url or not profile.admin_secret:
            logger.error("No CA URL / admin secret configured for %s", profile.name)
            summary[key] = "failed"
            continue
        try:
            logger.info("Enrolling admin for %s...", profile.name)
            identity = await asyncio.to_thread(
                client.enroll, profile.ca_url, profile.admin_user, profile.admin_secret, profile.msp_id
            )
            await wallet.put(profile.admin_user, identity)
        except (EnrollmentError, requests.RequestException, OSError) as e:
            logger.error("Failed to enroll admin for %s: %s", profile.name, e)
            summary[key] = "failed"
            continue
        logger.info("Successfully enrolled %s for %s", profile.admin_user, profile.name)
        summary[key] = "enrolled"
    return summary
