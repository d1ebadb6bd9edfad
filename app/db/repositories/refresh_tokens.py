from datetime import datetime
from typing import Optional

from app.db.repositories.base import BaseRepository
from app.db.models.refresh_tokens import RefreshToken

class RefreshTokenRepository(BaseRepository[RefreshToken]):
    model = RefreshToken

    def get_by_jti(self, jti: str) -> Optional[RefreshToken]:
        return self.first_where(self.model.jti == jti)

    def session_is_open(self, session_id: str, now: datetime) -> bool:
        """Vrai si la session a encore un refresh utilisable (ni révoqué, ni expiré)."""
        current = self.first_where(
            self.model.session_id == session_id,
            self.model.revoked_at.is_(None),
        )
        return current is not None and current.is_usable(now)

    def revoke(self, jti: str, *, now: datetime, replaced_by: Optional[str] = None) -> bool:
        """Révoque le token (idempotent). Renvoie False s'il était inconnu ou déjà révoqué."""
        token = self.get_by_jti(jti)
        if not token or token.revoked_at:
            return False
        self.update(token, revoked_at=now, replaced_by_jti=replaced_by)
        return True
