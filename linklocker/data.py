"""
Data access functions for downloads, users, settings and community links.

Every function takes the document store explicitly. Stored documents keep the
camelCase keys written by the web client; results are hydrated into the
dataclasses in `linklocker.types`, with every stored timestamp rendered as an
ISO-8601 string.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar

from dacite import Config, from_dict
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, ArrayUnion, Increment

from linklocker.constants import (
    COMMUNITY_LINKS_COLLECTION,
    DOWNLOADS_COLLECTION,
    SETTINGS_COLLECTION,
    SETTINGS_DOC_ID,
    USERS_COLLECTION,
)
from linklocker.errors import NotFound
from linklocker.json_utils import convert_keys, enum_dict_factory
from linklocker.store import ASCENDING, DESCENDING, DocumentStore, StoredDocument
from linklocker.types import (
    ActivityComment,
    AuthorSnapshot,
    CommunityLink,
    CommunityLinkInput,
    Download,
    DownloadInput,
    FileType,
    Settings,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DACITE_CONFIG = Config(cast=[Enum], check_types=False)
_DOWNLOAD_INPUT_FIELDS = {f.name for f in fields(DownloadInput)}
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# --- Conversion helpers ---


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way JavaScript's `Date.toISOString` does."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utcnow_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def _normalize_comment(comment: dict) -> dict:
    created_at = comment.get("createdAt")
    if isinstance(created_at, datetime):
        created_at = format_timestamp(created_at)
    elif isinstance(created_at, str):
        try:
            created_at = format_timestamp(parse_timestamp(created_at))
        except ValueError:
            logger.warning(
                "Comment %s has unparsable createdAt %r", comment.get("id"), created_at
            )
    elif isinstance(created_at, (int, float)) and not isinstance(created_at, bool):
        # Epoch milliseconds, as written by Date.now().
        created_at = format_timestamp(
            datetime.fromtimestamp(created_at / 1000, timezone.utc)
        )
    else:
        created_at = _utcnow_iso()
    return {**comment, "createdAt": created_at}


def _hydrate(data_class: Type[T], doc: StoredDocument) -> T:
    data: dict[str, Any] = {}
    for key, value in doc.data.items():
        data[key] = format_timestamp(value) if isinstance(value, datetime) else value
    data["id"] = doc.id
    if "comments" in {f.name for f in fields(data_class)}:
        data["comments"] = [_normalize_comment(c) for c in data.get("comments") or []]
    return from_dict(
        data_class=data_class,
        data=convert_keys(data, "camel_to_snake"),
        config=_DACITE_CONFIG,
    )


def _to_document(obj) -> dict:
    doc = convert_keys(asdict(obj, dict_factory=enum_dict_factory), "snake_to_camel")
    return {k: v for k, v in doc.items() if v is not None}


def _new_comment(content: str, author: User) -> dict:
    return {
        "id": f"comment-{uuid.uuid4().hex}",
        "author": _to_document(AuthorSnapshot.from_user(author)),
        "content": content,
        "createdAt": _utcnow_iso(),
    }


async def _remove_comment(
    store: DocumentStore, collection: str, doc_id: str, comment_id: str
) -> None:
    """
    Rewrite the stored comment list without `comment_id`.

    The other comments are written back exactly as stored. Concurrent
    deletions on the same document can race and lose one of the removals.
    """
    doc = await store.get_document(collection, doc_id)
    if doc is None:
        raise NotFound(collection, doc_id)

    remaining = [
        comment
        for comment in doc.data.get("comments") or []
        if comment.get("id") != comment_id
    ]
    await store.update_document(collection, doc_id, {"comments": remaining})


def _comment_sort_key(comment: ActivityComment) -> datetime:
    try:
        return parse_timestamp(comment.created_at)
    except ValueError:
        return _EPOCH


# --- Downloads ---


async def list_downloads(store: DocumentStore) -> list[Download]:
    docs = await store.list_documents(
        DOWNLOADS_COLLECTION, order_by="title", direction=ASCENDING
    )
    return [_hydrate(Download, doc) for doc in docs]


async def get_download(store: DocumentStore, download_id: str) -> Optional[Download]:
    doc = await store.get_document(DOWNLOADS_COLLECTION, download_id)
    if doc is None:
        return None
    return _hydrate(Download, doc)


async def _reload_download(store: DocumentStore, download_id: str) -> Download:
    download = await get_download(store, download_id)
    if download is None:
        raise NotFound(DOWNLOADS_COLLECTION, download_id)
    return download


async def create_download(store: DocumentStore, download: DownloadInput) -> Download:
    data = {
        **_to_document(download),
        "createdAt": SERVER_TIMESTAMP,
        "comments": [],
    }
    download_id = await store.add_document(DOWNLOADS_COLLECTION, data)
    logger.info("Created download %s (%s)", download_id, download.title)
    return await _reload_download(store, download_id)


async def update_download(
    store: DocumentStore, download_id: str, changes: Mapping[str, Any]
) -> Download:
    """
    Merge `changes` into an existing download.

    Args:
        changes: Subset of `DownloadInput` fields, keyed by field name.

    Raises:
        ValueError: if `changes` names a field `DownloadInput` does not have.
        NotFound: if the download does not exist.
    """
    unknown = set(changes) - _DOWNLOAD_INPUT_FIELDS
    if unknown:
        raise ValueError(f"Unknown download fields: {sorted(unknown)}")

    payload = {}
    for key, value in changes.items():
        if key == "file_type":
            value = FileType(value).value
        payload[key] = value

    if payload:
        await store.update_document(
            DOWNLOADS_COLLECTION, download_id, convert_keys(payload, "snake_to_camel")
        )
    return await _reload_download(store, download_id)


async def delete_download(store: DocumentStore, download_id: str) -> None:
    await store.delete_document(DOWNLOADS_COLLECTION, download_id)


async def add_comment(
    store: DocumentStore, download_id: str, content: str, author: User
) -> Download:
    comment = _new_comment(content, author)
    await store.update_document(
        DOWNLOADS_COLLECTION, download_id, {"comments": ArrayUnion([comment])}
    )
    return await _reload_download(store, download_id)


async def delete_comment(
    store: DocumentStore, download_id: str, comment_id: str
) -> None:
    await _remove_comment(store, DOWNLOADS_COLLECTION, download_id, comment_id)


# --- Users ---


async def list_users(store: DocumentStore) -> list[User]:
    docs = await store.list_documents(
        USERS_COLLECTION, order_by="createdAt", direction=ASCENDING
    )
    return [_hydrate(User, doc) for doc in docs]


async def get_user(store: DocumentStore, user_id: str) -> Optional[User]:
    doc = await store.get_document(USERS_COLLECTION, user_id)
    if doc is None:
        return None
    return _hydrate(User, doc)


async def find_users_by_email(store: DocumentStore, email: str) -> list[User]:
    docs = await store.find_documents(USERS_COLLECTION, "email", email)
    return [_hydrate(User, doc) for doc in docs]


async def create_user(
    store: DocumentStore,
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole,
    avatar_url: str,
) -> User:
    """Write a new user with zero points. Does not check for duplicates."""
    data = {
        "name": name,
        "email": email,
        "password": password,
        "role": UserRole(role).value,
        "avatarUrl": avatar_url,
        "points": 0,
        "createdAt": SERVER_TIMESTAMP,
    }
    user_id = await store.add_document(USERS_COLLECTION, data)
    user = await get_user(store, user_id)
    if user is None:
        raise NotFound(USERS_COLLECTION, user_id)
    return user


async def delete_user(store: DocumentStore, user_id: str) -> None:
    await store.delete_document(USERS_COLLECTION, user_id)


async def update_user_avatar(
    store: DocumentStore, user_id: str, avatar_url: str
) -> User:
    await store.update_document(USERS_COLLECTION, user_id, {"avatarUrl": avatar_url})
    user = await get_user(store, user_id)
    if user is None:
        raise NotFound(USERS_COLLECTION, user_id)
    return user


# --- Settings ---


async def get_settings(store: DocumentStore) -> Settings:
    doc = await store.get_document(SETTINGS_COLLECTION, SETTINGS_DOC_ID)
    settings = Settings()
    if doc is None:
        return settings

    is_open = doc.data.get("isRegistrationOpen")
    if isinstance(is_open, bool):
        settings.is_registration_open = is_open
    announcement = doc.data.get("announcement")
    if isinstance(announcement, str):
        settings.announcement = announcement
    return settings


async def get_registration_status(store: DocumentStore) -> bool:
    settings = await get_settings(store)
    return settings.is_registration_open


async def set_registration_status(store: DocumentStore, is_open: bool) -> None:
    await store.set_document(
        SETTINGS_COLLECTION,
        SETTINGS_DOC_ID,
        {"isRegistrationOpen": is_open},
        merge=True,
    )


async def get_announcement(store: DocumentStore) -> str:
    settings = await get_settings(store)
    return settings.announcement


async def set_announcement(store: DocumentStore, message: str) -> None:
    await store.set_document(
        SETTINGS_COLLECTION, SETTINGS_DOC_ID, {"announcement": message}, merge=True
    )


# --- Activity ---


async def get_all_comments(store: DocumentStore) -> list[ActivityComment]:
    """
    Collect the comments of every download, most recent first.

    Reads every download document on each call.
    """
    comments: list[ActivityComment] = []
    for download in await list_downloads(store):
        for comment in download.comments:
            comments.append(
                ActivityComment(
                    id=comment.id,
                    author=comment.author,
                    content=comment.content,
                    created_at=comment.created_at,
                    link_id=download.id,
                    link_title=download.title,
                )
            )

    comments.sort(key=_comment_sort_key, reverse=True)
    return comments


# --- Community links ---


async def list_community_links(store: DocumentStore) -> list[CommunityLink]:
    docs = await store.list_documents(
        COMMUNITY_LINKS_COLLECTION, order_by="createdAt", direction=DESCENDING
    )
    return [_hydrate(CommunityLink, doc) for doc in docs]


async def get_community_link(
    store: DocumentStore, link_id: str
) -> Optional[CommunityLink]:
    doc = await store.get_document(COMMUNITY_LINKS_COLLECTION, link_id)
    if doc is None:
        return None
    return _hydrate(CommunityLink, doc)


async def _reload_community_link(store: DocumentStore, link_id: str) -> CommunityLink:
    link = await get_community_link(store, link_id)
    if link is None:
        raise NotFound(COMMUNITY_LINKS_COLLECTION, link_id)
    return link


async def add_community_link(
    store: DocumentStore, link: CommunityLinkInput, user: User
) -> CommunityLink:
    data = {
        **_to_document(link),
        "author": _to_document(AuthorSnapshot.from_user(user)),
        "createdAt": SERVER_TIMESTAMP,
        "comments": [],
    }
    link_id = await store.add_document(COMMUNITY_LINKS_COLLECTION, data)
    logger.info("User %s shared community link %s", user.id, link_id)
    return await _reload_community_link(store, link_id)


async def delete_community_link(store: DocumentStore, link_id: str) -> None:
    await store.delete_document(COMMUNITY_LINKS_COLLECTION, link_id)


async def delete_community_link_comment(
    store: DocumentStore, link_id: str, comment_id: str
) -> None:
    await _remove_comment(store, COMMUNITY_LINKS_COLLECTION, link_id, comment_id)


async def add_comment_to_community_link(
    store: DocumentStore, link_id: str, content: str, user: User
) -> CommunityLink:
    """
    Append a comment to a community link and award its author one point.

    The comment write and the points increment are separate, non-atomic
    writes. If the increment fails (for example because the author's user
    document was deleted) the comment stays recorded and the error propagates.

    Raises:
        NotFound: if the link, or the link's author, does not exist.
    """
    link = await get_community_link(store, link_id)
    if link is None:
        raise NotFound(COMMUNITY_LINKS_COLLECTION, link_id)

    comment = _new_comment(content, user)
    await store.update_document(
        COMMUNITY_LINKS_COLLECTION, link_id, {"comments": ArrayUnion([comment])}
    )

    try:
        await store.update_document(
            USERS_COLLECTION, link.author.id, {"points": Increment(1)}
        )
    except NotFound:
        logger.warning(
            "Comment %s recorded on link %s but author %s no longer exists; "
            "point not awarded",
            comment["id"],
            link_id,
            link.author.id,
        )
        raise

    return await _reload_community_link(store, link_id)
