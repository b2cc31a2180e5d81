"""
Session handling: login, registration and the persisted current user.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from enum import Enum
from typing import Optional

from dacite import Config, DaciteError, from_dict

from linklocker import data
from linklocker.constants import DEFAULT_AVATAR_URL, SESSION_STORAGE_KEY
from linklocker.errors import StoreError
from linklocker.json_utils import convert_keys, enum_dict_factory
from linklocker.local_storage import LocalStorage
from linklocker.store import DocumentStore
from linklocker.types import User, UserRole

logger = logging.getLogger(__name__)


def dump_user(user: User) -> str:
    return json.dumps(
        convert_keys(asdict(user, dict_factory=enum_dict_factory), "snake_to_camel")
    )


def load_user(raw: str) -> User:
    """
    Parse a persisted user snapshot.

    Raises:
        ValueError: if `raw` is not JSON or does not describe a user.
    """
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Stored user is not a JSON object")
    try:
        return from_dict(
            data_class=User,
            data=convert_keys(payload, "camel_to_snake"),
            config=Config(cast=[Enum], check_types=False),
        )
    except DaciteError as e:
        raise ValueError(f"Stored user is malformed: {e}") from e


class Session:
    """
    The current user of one client, kept in memory and in local storage.

    `loading` starts out True and drops to False once `initialize` has run;
    `login` and `register` raise it again for the duration of their store
    round trip.
    """

    def __init__(
        self,
        store: DocumentStore,
        local_storage: LocalStorage,
        *,
        storage_key: str = SESSION_STORAGE_KEY,
        default_avatar_url: str = DEFAULT_AVATAR_URL,
    ):
        self.store = store
        self.local_storage = local_storage
        self.storage_key = storage_key
        self.default_avatar_url = default_avatar_url
        self.loading = True
        self.current_user: Optional[User] = None

    def initialize(self) -> Optional[User]:
        """Restore the persisted user, discarding a corrupt snapshot."""
        try:
            stored = self.local_storage.get_item(self.storage_key)
            if stored:
                self.current_user = load_user(stored)
        except ValueError as e:
            logger.error("Failed to parse stored user: %s", e)
            self.local_storage.remove_item(self.storage_key)
        finally:
            self.loading = False
        return self.current_user

    def _persist(self, user: User) -> None:
        self.local_storage.set_item(self.storage_key, dump_user(user))
        self.current_user = user

    async def login(self, email: str, password: str) -> Optional[User]:
        self.loading = True
        try:
            matches = await data.find_users_by_email(self.store, email)
            if not matches:
                logger.info("No user found with this email.")
                return None

            found = matches[0]
            # Plaintext comparison; passwords are stored as entered.
            if found.password != password:
                logger.info("Password does not match.")
                return None

            self._persist(found)
            return found
        except (StoreError, DaciteError, ValueError, OSError):
            logger.exception("Error during login")
            return None
        finally:
            self.loading = False

    def logout(self) -> None:
        self.current_user = None
        self.local_storage.remove_item(self.storage_key)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> Optional[User]:
        """
        Create an account. The new user is returned but not logged in.

        Returns None if the email is already registered or the store fails.
        """
        self.loading = True
        try:
            if await data.find_users_by_email(self.store, email):
                logger.info("An account with this email already exists.")
                return None

            return await data.create_user(
                self.store,
                name=name,
                email=email,
                password=password,
                role=role,
                avatar_url=self.default_avatar_url,
            )
        except (StoreError, DaciteError, ValueError):
            logger.exception("Error during registration")
            return None
        finally:
            self.loading = False

    def update_user(self, user: User) -> None:
        """Refresh the session copy of the user; nothing is written to the store."""
        self._persist(user)
