"""
Pydantic request schemas for the HTTP API. Bodies use camelCase keys.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from linklocker.types import FileType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DownloadCreateRequest(CamelModel):
    title: str = Field(..., min_length=1)
    image_url: str
    file_type: FileType
    download_url: str
    description: Optional[str] = None


class DownloadUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    image_url: Optional[str] = None
    file_type: Optional[FileType] = None
    download_url: Optional[str] = None
    description: Optional[str] = None


class CommentCreateRequest(CamelModel):
    content: str = Field(..., min_length=1)
    user_id: str


class AvatarUpdateRequest(CamelModel):
    avatar_url: str


class RegistrationStatusRequest(CamelModel):
    is_open: bool


class AnnouncementRequest(CamelModel):
    message: str


class CommunityLinkCreateRequest(CamelModel):
    title: str = Field(..., min_length=1)
    url: str
    file_type: FileType
    description: Optional[str] = None
    user_id: str
