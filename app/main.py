"""
➡️ But : assembler toutes les pièces du puzzle.

Crée l’instance FastAPI (app).

Configure :

les logs (console + événements d'audit)

CORS (le lecteur isolé tourne dans une origine opaque : il doit pouvoir appeler /playback/renew et /stream)

titre, version, tags

schéma OpenAPI personnalisé

Inclut les routers (ex : /api/v1/stream).

Initialise la base SQLite au démarrage (lifespan).

🔹 Avantages :

Centralise la configuration du serveur HTTP.

Point unique d’exécution : uvicorn app.main:app --reload.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.openapi import custom_openapi
from app.db.session import init_db

from app.api.v1.routers import access, authentication, health, playback, stream, viewer

import uvicorn

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Démarrage
    init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "auth", "description": "Opérations liées à l'authentification"},
        {"name": "access", "description": "Droits d'accès utilisateur ↔ média (admin)"},
        {"name": "playback", "description": "Émission et renouvellement des tokens de streaming"},
        {"name": "stream", "description": "Lecture des octets (requêtes Range) derrière un token"},
        {"name": "viewer", "description": "Page de lecture protégée"},
        {"name": "health", "description": "État du service"},
    ],
)

# CORS : les tokens voyagent dans l'URL, pas en cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=False,
    allow_methods=["*"], allow_headers=["*"],
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "X-Role", "X-Watermark-Required"],
)

# Routers
app.include_router(health.router, prefix=settings.API_V1_STR)
app.include_router(authentication.router, prefix=settings.API_V1_STR)
app.include_router(access.router, prefix=settings.API_V1_STR)
app.include_router(playback.router, prefix=settings.API_V1_STR)
app.include_router(stream.router, prefix=settings.API_V1_STR)
app.include_router(viewer.router, prefix=settings.API_V1_STR)

# Génération du schéma OpenAPI custom (facultatif, mais propre)
app.openapi = lambda: custom_openapi(app)

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8080) # http://localhost:8080
