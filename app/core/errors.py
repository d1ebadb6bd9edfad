"""
➡️ But : Nommer les erreurs métier du streaming sécurisé.

Chaque classe est une HTTPException : les services les lèvent directement,
FastAPI les transforme en réponse (statut + en-têtes) sans handler supplémentaire.

Forbidden           → 403 (pas de droit d'accès, utilisateur non admin)
NotFound            → 404 (utilisateur, média ou fichier introuvable)
InvalidToken        → 401 (signature invalide, token illisible : signe de falsification)
TokenExpired        → 401 (TTL écoulé : cas normal, il suffit de redemander un token)
RangeNotSatisfiable → 416 (en-tête Range invalide ou hors limites)
"""

from typing import Optional

from fastapi import HTTPException, status


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not Found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidToken(HTTPException):
    def __init__(self, detail: str = "Invalid token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": 'Bearer error="invalid_token"'},
        )


class TokenExpired(HTTPException):
    def __init__(self, detail: str = "Token expired"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={
                "WWW-Authenticate": 'Bearer error="invalid_token", error_description="expired"',
            },
        )


class RangeNotSatisfiable(HTTPException):
    def __init__(self, size: int, detail: Optional[str] = None):
        super().__init__(
            status_code=416,
            detail=detail or "Requested range not satisfiable",
            headers={"Content-Range": f"bytes */{size}", "Accept-Ranges": "bytes"},
        )
        self.size = size
