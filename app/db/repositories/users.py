from typing import Optional

from app.db.repositories.base import BaseRepository
from app.db.models.users import User


class UserRepository(BaseRepository[User]):
    """Comptes admin et clients ; l'identifiant de connexion est le username."""

    model = User

    def get_by_username(self, username: str) -> Optional[User]:
        return self.first_where(self.model.username == username)
