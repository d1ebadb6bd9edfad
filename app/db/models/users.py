"""
➡️ But : Définir la structure des tables de la base (ORM).

Représente les comptes : un administrateur (qui gère les droits) ou un client
(qui ne voit que les médias qui lui ont été attribués).

🔹 Le rôle décide du filigrane et des restrictions plein écran du lecteur.
"""

from typing import Optional
from sqlmodel import Field

from .base import BaseModelDB

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"


class User(BaseModelDB, table=True):
    username: str = Field(index=True, unique=True)
    email: Optional[str] = Field(default=None, index=True)
    hashed_password: str
    role: str = Field(default=ROLE_CLIENT, description="admin | client")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
