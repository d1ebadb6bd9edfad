from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.db.models.users import ROLE_ADMIN


class StreamTicketOut(BaseModel):
    """
    Réponse d'émission : ce que le lecteur (ViewerShell) consomme.
    Sérialisé en camelCase : {streamUrl, expiresAt, watermarkRequired, role, ...}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    stream_url: str
    expires_at: datetime
    watermark_required: bool
    role: str
    media_id: int
    media_type: str
    content_type: str
    title: str
    thumbnail_url: Optional[str] = None
    refresh_url: str


@dataclass(frozen=True)
class StreamClaims:
    """Contenu d'un token de streaming dont la signature et l'expiration ont été vérifiées."""

    media_id: int
    user_id: int
    role: str
    expires_at: datetime
    chain_started_at: datetime
    session_id: Optional[str] = None

    @property
    def watermark_required(self) -> bool:
        return self.role != ROLE_ADMIN
