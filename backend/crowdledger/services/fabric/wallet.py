"""
wallet.py — File-system credential store.

Reads and writes identities in the fabric-network wallet layout used by the
network tooling: one `<label>.id` JSON document per identity inside the
organization's wallet directory.

Async methods mirror the wallet API the gateway consumes (`get(label)`); file
IO is small and local, so it runs inline.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Union

from crowdledger.core.logging import get_logger
from crowdledger.services.fabric.errors import WalletError
from crowdledger.services.fabric.models import X509Identity

logger = get_logger(__name__)

ID_SUFFIX = ".id"


class FileSystemWallet:
    """Identity store rooted at one directory."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _entry(self, label: str) -> Path:
        if not label or "/" in label or "\\" in label:
            raise WalletError(f"Invalid identity label: {label!r}")
        return self.path / f"{label}{ID_SUFFIX}"

    async def get(self, label: str) -> Optional[X509Identity]:
        """Return the identity stored under `label`, or None when absent."""
        entry = self._entry(label)
        if not entry.exists():
            logger.debug("No identity %s in %s", label, self.path)
            return None
        try:
            with entry.open("r", encoding="utf-8") as fh:
                doc = json.load(fh)
            return X509Identity.from_document(doc)
        except OSError as e:
            raise WalletError(f"Unreadable identity {entry}: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise WalletError(f"Malformed identity {entry}: {e}") from e

    async def put(self, label: str, identity: X509Identity) -> None:
        entry = self._entry(label)
        self.path.mkdir(parents=True, exist_ok=True)
        with entry.open("w", encoding="utf-8") as fh:
            json.dump(identity.to_document(), fh)
        logger.info("Stored identity %s in %s", label, self.path)

    async def exists(self, label: str) -> bool:
        return self._entry(label).exists()

    async def list(self) -> List[str]:
        if not self.path.is_dir():
            return []
        return sorted(p.name[: -len(ID_SUFFIX)] for p in self.path.glob(f"*{ID_SUFFIX}"))
