"""
Register an administrator account.

Uses the same registration path as the web client, so the email must not be
taken yet. The new admin still has to log in separately.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from linklocker.auth import Session
from linklocker.config import get_settings
from linklocker.dependencies import get_document_store, get_local_storage
from linklocker.types import UserRole

logger = logging.getLogger(__name__)


async def seed_admin(session: Session, *, name: str, email: str, password: str) -> bool:
    user = await session.register(name, email, password, role=UserRole.ADMIN)
    if user is None:
        logger.error("Could not create admin %s (email taken or store error)", email)
        return False
    logger.info("Created admin %s with id %s", user.email, user.id)
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a LinkLocker admin user")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True, help="Login email")
    parser.add_argument("--password", required=True, help="Login password")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    session = Session(
        get_document_store(),
        get_local_storage(),
        storage_key=settings.session_storage_key,
        default_avatar_url=settings.default_avatar_url,
    )
    created = asyncio.run(
        seed_admin(session, name=args.name, email=args.email, password=args.password)
    )
    return 0 if created else 1


if __name__ == "__main__":
    raise SystemExit(main())
