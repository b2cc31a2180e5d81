"""
HTTP routes exposing the data access functions.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from linklocker import data
from linklocker.dependencies import get_document_store
from linklocker.json_utils import convert_keys, enum_dict_factory
from linklocker.schemas import (
    AnnouncementRequest,
    AvatarUpdateRequest,
    CommentCreateRequest,
    CommunityLinkCreateRequest,
    DownloadCreateRequest,
    DownloadUpdateRequest,
    RegistrationStatusRequest,
)
from linklocker.store import DocumentStore
from linklocker.types import CommunityLinkInput, DownloadInput, User

router = APIRouter()


def _dump(obj) -> dict:
    return convert_keys(asdict(obj, dict_factory=enum_dict_factory), "snake_to_camel")


def _dump_user(user: User) -> dict:
    payload = _dump(user)
    payload.pop("password", None)
    return payload


async def _require_user(store: DocumentStore, user_id: str) -> User:
    user = await data.get_user(store, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# --- Downloads ---


@router.get("/downloads")
async def list_downloads(store: DocumentStore = Depends(get_document_store)):
    return [_dump(d) for d in await data.list_downloads(store)]


@router.post("/downloads", status_code=201)
async def create_download(
    payload: DownloadCreateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    download = await data.create_download(
        store, DownloadInput(**payload.model_dump())
    )
    return _dump(download)


@router.get("/downloads/{download_id}")
async def get_download(
    download_id: str, store: DocumentStore = Depends(get_document_store)
):
    download = await data.get_download(store, download_id)
    if download is None:
        raise HTTPException(status_code=404, detail="Download not found")
    return _dump(download)


@router.patch("/downloads/{download_id}")
async def update_download(
    download_id: str,
    payload: DownloadUpdateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    changes = payload.model_dump(exclude_unset=True)
    return _dump(await data.update_download(store, download_id, changes))


@router.delete("/downloads/{download_id}", status_code=204)
async def delete_download(
    download_id: str, store: DocumentStore = Depends(get_document_store)
):
    await data.delete_download(store, download_id)


@router.post("/downloads/{download_id}/comments", status_code=201)
async def add_comment(
    download_id: str,
    payload: CommentCreateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    author = await _require_user(store, payload.user_id)
    download = await data.add_comment(store, download_id, payload.content, author)
    return _dump(download)


@router.delete("/downloads/{download_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    download_id: str,
    comment_id: str,
    store: DocumentStore = Depends(get_document_store),
):
    await data.delete_comment(store, download_id, comment_id)


# --- Users ---


@router.get("/users")
async def list_users(store: DocumentStore = Depends(get_document_store)):
    return [_dump_user(u) for u in await data.list_users(store)]


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(user_id: str, store: DocumentStore = Depends(get_document_store)):
    await data.delete_user(store, user_id)


@router.put("/users/{user_id}/avatar")
async def update_user_avatar(
    user_id: str,
    payload: AvatarUpdateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    return _dump_user(
        await data.update_user_avatar(store, user_id, payload.avatar_url)
    )


# --- Settings ---


@router.get("/settings")
async def get_settings(store: DocumentStore = Depends(get_document_store)):
    return _dump(await data.get_settings(store))


@router.put("/settings/registration")
async def set_registration_status(
    payload: RegistrationStatusRequest,
    store: DocumentStore = Depends(get_document_store),
):
    await data.set_registration_status(store, payload.is_open)
    return _dump(await data.get_settings(store))


@router.put("/settings/announcement")
async def set_announcement(
    payload: AnnouncementRequest,
    store: DocumentStore = Depends(get_document_store),
):
    await data.set_announcement(store, payload.message)
    return _dump(await data.get_settings(store))


# --- Activity ---


@router.get("/activity/comments")
async def get_all_comments(store: DocumentStore = Depends(get_document_store)):
    return [_dump(c) for c in await data.get_all_comments(store)]


# --- Community links ---


@router.get("/community-links")
async def list_community_links(store: DocumentStore = Depends(get_document_store)):
    return [_dump(link) for link in await data.list_community_links(store)]


@router.post("/community-links", status_code=201)
async def add_community_link(
    payload: CommunityLinkCreateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    user = await _require_user(store, payload.user_id)
    link_input = CommunityLinkInput(**payload.model_dump(exclude={"user_id"}))
    return _dump(await data.add_community_link(store, link_input, user))


@router.delete("/community-links/{link_id}", status_code=204)
async def delete_community_link(
    link_id: str, store: DocumentStore = Depends(get_document_store)
):
    await data.delete_community_link(store, link_id)


@router.post("/community-links/{link_id}/comments", status_code=201)
async def add_comment_to_community_link(
    link_id: str,
    payload: CommentCreateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    user = await _require_user(store, payload.user_id)
    link = await data.add_comment_to_community_link(
        store, link_id, payload.content, user
    )
    return _dump(link)
