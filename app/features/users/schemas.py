"""
➡️ But : Définir les formats de sortie de l'API pour les comptes.

UserOut → réponse de l'API (/auth/me)

Sépare les modèles "de stockage" (ORM) de ceux "de transfert" (I/O API).

🔹 Empêche d'exposer par erreur des infos sensibles (ex: hash de mot de passe).
"""

from typing import Optional

from sqlmodel import SQLModel

class UserOut(SQLModel):
    id: int
    username: str
    email: Optional[str] = None
    role: str
