from typing import Optional
from sqlmodel import Field

from .base import BaseModelDB

MEDIA_TYPES = ("video", "document", "image", "presentation")


class MediaItem(BaseModelDB, table=True):
    """Élément du catalogue. Lecture seule pour le streaming : seul le catalogue le modifie."""

    title: str = Field(index=True)
    description: Optional[str] = None
    media_type: str = Field(default="video", description="video | document | image | presentation")
    object_key: str = Field(index=True, description="Emplacement des octets (chemin local ou clé S3)")
    mime_type: Optional[str] = Field(default=None, description="Type MIME déclaré (video/mp4...)")
    bytes: Optional[int] = Field(default=None, description="Taille en octets, si connue")
    thumbnail_url: Optional[str] = Field(default=None, description="Affiche (poster) avant lecture")
    is_active: bool = Field(default=True)
