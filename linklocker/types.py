from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class FileType(str, Enum):
    """Category tag shared by downloads and community links."""

    PELICULA_MKV_MP4 = "pelicula-mkv-mp4"
    PELICULA_ISO = "pelicula-iso"
    SERIE_MKV_MP4 = "serie-mkv-mp4"
    SERIE_ISO = "serie-iso"
    DOCUMENTAL_MKV_MP4 = "documental-mkv-mp4"
    DOCUMENTAL_ISO = "documental-iso"


@dataclass
class User:
    """A registered account. `password` is stored and compared as plaintext."""

    id: str
    name: str
    email: str
    role: UserRole
    avatar_url: str
    password: Optional[str] = None
    created_at: Optional[str] = None
    points: Optional[int] = None


@dataclass
class AuthorSnapshot:
    """Copy of a user's public fields taken when content is posted."""

    id: str
    name: str
    avatar_url: str

    @classmethod
    def from_user(cls, user: User) -> "AuthorSnapshot":
        return cls(id=user.id, name=user.name, avatar_url=user.avatar_url)


@dataclass
class Comment:
    id: str
    author: AuthorSnapshot
    content: str
    created_at: str


@dataclass
class ActivityComment(Comment):
    """A download comment annotated with the download it belongs to."""

    link_id: str = ""
    link_title: str = ""


@dataclass
class DownloadInput:
    title: str
    image_url: str
    file_type: FileType
    download_url: str
    description: Optional[str] = None


@dataclass
class Download:
    id: str
    title: str
    image_url: str
    file_type: FileType
    download_url: str
    created_at: str
    description: Optional[str] = None
    comments: List[Comment] = field(default_factory=list)


@dataclass
class CommunityLinkInput:
    title: str
    url: str
    file_type: FileType
    description: Optional[str] = None


@dataclass
class CommunityLink:
    """A link shared by a user, with a snapshot of who posted it."""

    id: str
    title: str
    url: str
    file_type: FileType
    created_at: str
    author: AuthorSnapshot
    description: Optional[str] = None
    comments: List[Comment] = field(default_factory=list)


@dataclass
class Settings:
    """Site-wide settings stored as a single document."""

    is_registration_open: bool = True
    announcement: str = ""
