"""
➡️ But : Colonnes communes aux tables de la médiathèque (comptes, médias, droits, refresh tokens).

Les horodatages sont en UTC avec fuseau : ils sont comparés aux expirations des tokens.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModelDB(SQLModel, table=False):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
