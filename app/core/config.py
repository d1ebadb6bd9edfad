"""
➡️ But : Centraliser tous les paramètres configurables (nom d’app, chemin DB, secrets, TTL des tokens de streaming, stockage des médias...)

Utilise pydantic-settings pour charger automatiquement les variables d’environnement (.env, variables système…).

Fournit un objet settings unique, que tu importes ailleurs :

from app.core.config import settings
print(settings.STREAM_TOKEN_TTL_MINUTES)


🔹 Avantages :

Plus propre que des constantes éparpillées dans le code.

Facilite le passage entre environnements (dev / prod / test).
"""

from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings
from app.security.tokens import JWTSettings, StreamTokenSettings


class Settings(BaseSettings):
    # -----------------------------
    # App
    # -----------------------------
    APP_NAME: str = "Secure-Media-Library"
    API_V1_STR: str = "/api/v1"
    ENV: str = "dev"  # dev | prod | test
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    SQLITE_PATH: str = "app.db"  # fichier SQLite
    # Si tu veux forcer une URL différente (ex: Postgres), définis DATABASE_URL dans l'env.
    # "sqlite://" = base en mémoire (tests)
    DATABASE_URL: Optional[str] = None

    # -----------------------------
    # JWT / Auth (session)
    # -----------------------------
    JWT_SECRET_KEY: str = "CHANGE_ME"     # ⚠️ change en prod
    JWT_ISSUER: str = "secure-media-library"
    JWT_ALGORITHM: str = "HS256"

    ACCESS_TTL_MINUTES: int = 15          # access token court
    REFRESH_TTL_DAYS: int = 30            # refresh token long

    # Cookies (refresh)
    AUTH_REFRESH_COOKIE_NAME: str = "refresh_token"
    AUTH_COOKIE_SAMESITE: str = "lax"     # "lax" | "strict" | "none"
    AUTH_COOKIE_PATH: str = "/api/v1/auth"
    AUTH_COOKIE_SECURE: Optional[bool] = None   # auto selon ENV si None
    AUTH_COOKIE_MAX_AGE: Optional[int] = None   # auto depuis REFRESH_TTL si None

    # -----------------------------
    # Tokens de streaming
    # -----------------------------
    STREAM_SECRET_KEY: Optional[str] = None     # défaut : JWT_SECRET_KEY
    STREAM_TOKEN_ISSUER: str = "secure-media-library/stream"
    STREAM_TOKEN_TTL_MINUTES: int = 5           # quelques minutes, jamais des heures
    STREAM_RENEW_WINDOW_MINUTES: int = 240      # durée max d'une chaîne de renouvellements (un long film)
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # -----------------------------
    # Stockage des octets (local | s3)
    # -----------------------------
    STORAGE_BACKEND: str = "local"
    MEDIA_ROOT: str = "uploads"

    S3_ENDPOINT: str = "http://localhost:9000"
    S3_REGION: str = "us-east-1"
    S3_KEY: str = "minioadmin"
    S3_SECRET: str = "minioadmin"
    S3_BUCKET: str = "media"

    # -----------------------------
    # Lecteur (ViewerShell)
    # -----------------------------
    VIEWER_MODE: str = "isolated"               # isolated | inline
    VIEWER_REFRESH_MARGIN_SECONDS: int = 60
    VIEWER_WATERMARK_TILES: int = 12

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    # -----------------------------
    # Post-process values
    # -----------------------------
    def model_post_init(self, __context): # appelée automatiquement
        # DATABASE_URL par défaut depuis SQLITE_PATH si non fourni
        if not self.DATABASE_URL:
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{self.SQLITE_PATH}")

        # Cookie secure auto: true en prod si non spécifié
        if self.AUTH_COOKIE_SECURE is None:
            object.__setattr__(self, "AUTH_COOKIE_SECURE", self.ENV == "prod")

        # max_age auto depuis REFRESH_TTL
        if self.AUTH_COOKIE_MAX_AGE is None:
            max_age = self.REFRESH_TTL_DAYS * 24 * 60 * 60
            object.__setattr__(self, "AUTH_COOKIE_MAX_AGE", max_age)

        # Secret de streaming : même secret que les sessions si non fourni
        if not self.STREAM_SECRET_KEY:
            object.__setattr__(self, "STREAM_SECRET_KEY", self.JWT_SECRET_KEY)


# Instance globale importable partout
settings = Settings()

# Objet JWT prêt à l'emploi pour les services
jwt_settings = JWTSettings(
    secret=settings.JWT_SECRET_KEY,
    issuer=settings.JWT_ISSUER,
    algorithm=settings.JWT_ALGORITHM,
    access_ttl=timedelta(minutes=settings.ACCESS_TTL_MINUTES),
    refresh_ttl=timedelta(days=settings.REFRESH_TTL_DAYS),
)

# Paramètres des tokens de streaming (secret distinct possible)
stream_token_settings = StreamTokenSettings(
    secret=settings.STREAM_SECRET_KEY,
    issuer=settings.STREAM_TOKEN_ISSUER,
    ttl=timedelta(minutes=settings.STREAM_TOKEN_TTL_MINUTES),
    renew_window=timedelta(minutes=settings.STREAM_RENEW_WINDOW_MINUTES),
)
