from sqlmodel import Field
from typing import Optional
from datetime import datetime, timezone

from .base import BaseModelDB


def _as_utc(value: datetime) -> datetime:
    # SQLite rend des datetimes naïfs : ils sont écrits en UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class RefreshToken(BaseModelDB, table=True):
    """
    Refresh token de session, révocable (logout) et à usage unique (rotation).

    `session_id` est le jti du premier refresh de la session et ne change pas à la rotation :
    les tokens de streaming y sont rattachés.
    """

    jti: str = Field(index=True, unique=True)
    session_id: str = Field(index=True)
    user_id: int = Field(index=True, foreign_key="user.id")
    expires_at: datetime
    revoked_at: Optional[datetime] = Field(default=None)
    replaced_by_jti: Optional[str] = Field(default=None, description="jti émis lors de la rotation")
    user_agent: Optional[str] = None
    ip: Optional[str] = None

    def is_usable(self, now: datetime) -> bool:
        return self.revoked_at is None and _as_utc(self.expires_at) > now
