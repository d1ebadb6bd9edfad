"""
➡️ But : Documenter dans Swagger les deux niveaux de jetons de l'API.

- session (Bearer) : /auth, /access, /playback/{id}/token, /viewer ;
- lecture (query `token`) : /stream et /playback/renew, durée de vie courte.

La description reprend les durées réellement configurées (settings).
"""

from fastapi.openapi.utils import get_openapi

from app.core.config import settings

STREAM_TOKEN_SCHEME = "StreamToken"
STREAM_TOKEN_PATHS = ("/stream/", "/playback/renew")


def _description() -> str:
    return (
        "Bibliothèque de médias à diffusion protégée.\n\n"
        "### Conventions\n"
        "- Toutes les heures sont en UTC.\n"
        f"- `POST /playback/{{media_id}}/token` renvoie une URL de streaming valable "
        f"{settings.STREAM_TOKEN_TTL_MINUTES} min.\n"
        "- `/stream/{media_id}?token=...` accepte l'en-tête `Range` (une seule plage) ; "
        "chaque requête revalide le token.\n"
        "- `/playback/renew` prolonge une URL tant que la session d'origine est ouverte, "
        f"au plus {settings.STREAM_RENEW_WINDOW_MINUTES} min après la première émission.\n"
        "- Les en-têtes `X-Role` et `X-Watermark-Required` indiquent au lecteur "
        "quel filigrane afficher.\n"
    )


def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=_description(),
        tags=app.openapi_tags,
        routes=app.routes,
    )

    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})[STREAM_TOKEN_SCHEME] = {
        "type": "apiKey",
        "in": "query",
        "name": "token",
    }
    for path, operations in schema.get("paths", {}).items():
        if not any(marker in path for marker in STREAM_TOKEN_PATHS):
            continue
        for operation in operations.values():
            operation["security"] = [{STREAM_TOKEN_SCHEME: []}]

    app.openapi_schema = schema
    return app.openapi_schema
