from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from typing import Optional

from .base import utcnow


class AccessGrant(SQLModel, table=True):
    """
    Droit de lecture : (user, media) accordé par un admin.
    Au plus une ligne par couple (contrainte unique) : accorder deux fois ne crée rien.
    """

    __table_args__ = (UniqueConstraint("user_id", "media_id", name="uq_accessgrant_user_media"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("user.id"), nullable=False, index=True),
    )
    media_id: int = Field(
        sa_column=Column(Integer, ForeignKey("mediaitem.id"), nullable=False, index=True),
    )
    granted_by_id: int = Field(
        sa_column=Column(Integer, ForeignKey("user.id"), nullable=False),
    )
    granted_at: datetime = Field(default_factory=utcnow)
