"""
➡️ But : Moteur SQL et sessions de la médiathèque (comptes, catalogue, droits d'accès, refresh tokens).

Les droits d'accès sont lus à chaque émission de token de lecture : une session courte
par requête, jamais partagée entre requêtes.
"""

from typing import Any, Dict, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Les modèles doivent être importés pour que create_all connaisse leurs tables
from app.db.models.users import User  # noqa: F401
from app.db.models.media import MediaItem  # noqa: F401
from app.db.models.access_grants import AccessGrant  # noqa: F401
from app.db.models.refresh_tokens import RefreshToken  # noqa: F401

from app.core.config import settings

MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _engine_options(url: str) -> Dict[str, Any]:
    if not url.startswith("sqlite:"):
        return {"pool_pre_ping": True}
    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in MEMORY_URLS:
        # Base en mémoire : une connexion unique, sinon chaque session voit une base vide
        options["poolclass"] = StaticPool
    return options


def _build_engine() -> Engine:
    url = settings.DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL must be set")
    return create_engine(url, echo=settings.ENV == "dev", **_engine_options(url))


engine: Engine = _build_engine()


def init_db() -> None:
    """Crée les tables manquantes (pas de migrations)."""
    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
