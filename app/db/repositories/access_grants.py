"""
➡️ But : Persister les droits de lecture (qui peut voir quoi).

Opérations atomiques sur une seule ligne :
- insert protégé par la contrainte unique (user_id, media_id) ;
- delete par requête unique (pas de lecture préalable), donc idempotent.
"""

from typing import Optional, Set

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.db.repositories.base import BaseRepository
from app.db.models.access_grants import AccessGrant


class AccessGrantRepository(BaseRepository[AccessGrant]):
    model = AccessGrant

    def get_pair(self, user_id: int, media_id: int) -> Optional[AccessGrant]:
        return self.first_where(self.model.user_id == user_id, self.model.media_id == media_id)

    def exists(self, user_id: int, media_id: int) -> bool:
        return self.session.exec(
            select(self.model.id)
            .where(self.model.user_id == user_id)
            .where(self.model.media_id == media_id)
            .limit(1)
        ).first() is not None

    def insert_once(self, *, user_id: int, media_id: int, granted_by_id: int) -> AccessGrant:
        """
        Crée la ligne si elle n'existe pas encore et renvoie la ligne active.
        Deux insert concurrents : la contrainte unique en rejette un, qui relit la ligne gagnante.
        """
        existing = self.get_pair(user_id, media_id)
        if existing:
            return existing
        try:
            return self.create(user_id=user_id, media_id=media_id, granted_by_id=granted_by_id)
        except IntegrityError:
            self.session.rollback()
            winner = self.get_pair(user_id, media_id)
            if winner is None:
                raise
            return winner

    def delete_pair(self, user_id: int, media_id: int) -> int:
        result = self.session.exec(
            delete(self.model)
            .where(self.model.user_id == user_id)
            .where(self.model.media_id == media_id)
        )
        self.session.commit()
        return result.rowcount or 0

    def delete_all_for_media(self, media_id: int) -> int:
        result = self.session.exec(delete(self.model).where(self.model.media_id == media_id))
        self.session.commit()
        return result.rowcount or 0

    def media_ids_for_user(self, user_id: int) -> Set[int]:
        return set(self.session.exec(
            select(self.model.media_id).where(self.model.user_id == user_id)
        ).all())

    def user_ids_for_media(self, media_id: int) -> Set[int]:
        return set(self.session.exec(
            select(self.model.user_id).where(self.model.media_id == media_id)
        ).all())
