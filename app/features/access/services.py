"""
➡️ But : Source de vérité de "qui peut voir quoi".

AccessGrantService :
- grant / revoke sont idempotents (accorder deux fois = une seule ligne, révoquer deux fois = rien) ;
- check est une lecture pure, appelée à chaque émission de token de streaming ;
- un identifiant d'utilisateur ou de média inconnu lève NotFound.

🔹 Un token déjà émis ne relit jamais cette table : une révocation ne prend effet
   qu'à la prochaine émission (au plus un TTL plus tard).
"""

from typing import Set

from app.core.errors import NotFound
from app.db.models.access_grants import AccessGrant
from app.db.repositories.access_grants import AccessGrantRepository
from app.db.repositories.media import MediaRepository
from app.db.repositories.users import UserRepository
from app.features.streaming import audit


class AccessGrantService:
    def __init__(
        self,
        *,
        grant_repo: AccessGrantRepository,
        user_repo: UserRepository,
        media_repo: MediaRepository,
    ):
        self.grant_repo = grant_repo
        self.user_repo = user_repo
        self.media_repo = media_repo

    # ---------- Vérifications ----------
    def _require_user(self, user_id: int) -> None:
        if self.user_repo.get(user_id) is None:
            raise NotFound("User not found")

    def _require_media(self, media_id: int) -> None:
        if self.media_repo.get(media_id) is None:
            raise NotFound("Media not found")

    # ---------- Écriture ----------
    def grant(self, user_id: int, media_id: int, granted_by: int) -> AccessGrant:
        self._require_user(user_id)
        self._require_media(media_id)
        self._require_user(granted_by)
        grant = self.grant_repo.insert_once(user_id=user_id, media_id=media_id, granted_by_id=granted_by)
        audit.emit(audit.GRANTED, user_id=user_id, media_id=media_id, granted_by=granted_by)
        return grant

    def revoke(self, user_id: int, media_id: int) -> None:
        self._require_user(user_id)
        self._require_media(media_id)
        removed = self.grant_repo.delete_pair(user_id, media_id)
        if removed:
            audit.emit(audit.REVOKED, user_id=user_id, media_id=media_id)

    def revoke_all_for_media(self, media_id: int) -> int:
        """Retire tous les droits d'un média (ex : média retiré du catalogue)."""
        self._require_media(media_id)
        removed = self.grant_repo.delete_all_for_media(media_id)
        if removed:
            audit.emit(audit.REVOKED, media_id=media_id, count=removed)
        return removed

    # ---------- Lecture ----------
    def check(self, user_id: int, media_id: int) -> bool:
        self._require_user(user_id)
        self._require_media(media_id)
        return self.grant_repo.exists(user_id, media_id)

    def list_for_user(self, user_id: int) -> Set[int]:
        self._require_user(user_id)
        return self.grant_repo.media_ids_for_user(user_id)

    def list_for_media(self, media_id: int) -> Set[int]:
        self._require_media(media_id)
        return self.grant_repo.user_ids_for_media(media_id)
