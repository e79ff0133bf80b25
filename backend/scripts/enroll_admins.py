"""
enroll_admins.py — Enroll organization admin identities into their wallets.

Run once after the network and its CAs are up, before starting the API.
Already-enrolled admins are left untouched.

Example:
    python scripts/enroll_admins.py
    python scripts/enroll_admins.py --org investor --org validator
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from crowdledger.core.config import build_organization_profiles, settings
from crowdledger.core.logging import configure_logging, get_logger
from crowdledger.services.fabric.enrollment import enroll_admins

logger = get_logger(__name__)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Enroll Fabric CA admin identities for each organization"
    )
    parser.add_argument(
        "--org",
        action="append",
        default=None,
        help="Organization key to enroll (repeatable; default: all configured)",
    )
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    profiles = build_organization_profiles()

    if args.org:
        unknown = sorted(set(args.org) - set(profiles))
        if unknown:
            logger.error("Unknown organization(s): %s", ", ".join(unknown))
            return 2
        profiles = {key: profiles[key] for key in args.org}

    summary = asyncio.run(enroll_admins(profiles))

    print("\n=== Enrollment Summary ===")
    for key, outcome in summary.items():
        print(f"  {key:<10} {outcome}")

    return 1 if "failed" in summary.values() else 0


if __name__ == "__main__":
    sys.exit(main())
