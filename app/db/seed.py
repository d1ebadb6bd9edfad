from pathlib import Path
from typing import Any, Dict, List

import yaml
from sqlmodel import Session

from app.core.errors import NotFound
from app.db.models.users import ROLE_ADMIN, ROLE_CLIENT
from app.db.models.media import MEDIA_TYPES
from app.db.repositories.users import UserRepository
from app.db.repositories.media import MediaRepository
from app.db.repositories.access_grants import AccessGrantRepository
from app.features.access.services import AccessGrantService
from app.security.password import hash_password


# -----------------------------
# YAML loader
# -----------------------------
def load_seed_yaml(seed_path: str | Path) -> Dict[str, Any]:
    path = Path(seed_path)
    if not path.exists():
        raise FileNotFoundError(f"Seed YAML introuvable: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Le YAML de seed doit contenir un objet racine (mapping).")
    return data


# -----------------------------
# Helpers
# -----------------------------
def _build_user_key_maps(data: Dict[str, Any]) -> Dict[str, str]:
    """user_key -> User.username (car User.key n'existe pas en DB)."""
    users_yaml: List[Dict[str, Any]] = data.get("users", [])
    return {u["key"]: u["username"] for u in users_yaml}


def _build_media_key_maps(data: Dict[str, Any]) -> Dict[str, str]:
    """media_key -> MediaItem.object_key (unique par fichier)."""
    media_yaml: List[Dict[str, Any]] = data.get("media", [])
    return {m["key"]: m["object_key"] for m in media_yaml}


# ------------------------------------------------------------
# Seed Users
# ------------------------------------------------------------
def seed_users(session: Session, data: Dict[str, Any]) -> int:
    repo = UserRepository(session)
    users: List[Dict[str, Any]] = data.get("users", [])
    if not users:
        print("⚠️ Aucun utilisateur dans le YAML (clé 'users').")
        return 0

    created = 0
    for u in users:
        if repo.get_by_username(u["username"]):
            continue
        role = u.get("role", ROLE_CLIENT)
        if role not in (ROLE_ADMIN, ROLE_CLIENT):
            raise ValueError(f"Rôle inconnu pour {u['username']!r}: {role!r}")
        repo.create(
            username=u["username"],
            email=u.get("email"),
            hashed_password=hash_password(u["password"]),
            role=role,
        )
        created += 1

    print(f"✅ {created} utilisateurs insérés ({len(users) - created} déjà présents).")
    return created


# ------------------------------------------------------------
# Seed Media (catalogue)
# ------------------------------------------------------------
def seed_media(session: Session, data: Dict[str, Any]) -> int:
    repo = MediaRepository(session)
    items: List[Dict[str, Any]] = data.get("media", [])
    if not items:
        print("ℹ️ Aucun média dans le YAML (clé 'media'), aucune insertion effectuée.")
        return 0

    created = 0
    for m in items:
        if repo.get_by_key(m["object_key"]):
            continue
        media_type = m.get("media_type", "video")
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Type de média inconnu pour {m['title']!r}: {media_type!r}")
        repo.create(
            title=m["title"],
            description=m.get("description"),
            media_type=media_type,
            object_key=m["object_key"],
            mime_type=m.get("mime_type"),
            bytes=m.get("bytes"),
            thumbnail_url=m.get("thumbnail_url"),
            is_active=bool(m.get("is_active", True)),
        )
        created += 1

    print(f"✅ {created} médias insérés ({len(items) - created} déjà présents).")
    return created


# ------------------------------------------------------------
# Seed Grants (via le service : mêmes règles que l'API)
# ------------------------------------------------------------
def seed_grants(session: Session, data: Dict[str, Any]) -> int:
    grants: List[Dict[str, Any]] = data.get("grants", [])
    if not grants:
        print("ℹ️ Aucun droit dans le YAML (clé 'grants').")
        return 0

    user_repo = UserRepository(session)
    media_repo = MediaRepository(session)
    svc = AccessGrantService(
        grant_repo=AccessGrantRepository(session),
        user_repo=user_repo,
        media_repo=media_repo,
    )
    user_keys = _build_user_key_maps(data)
    media_keys = _build_media_key_maps(data)

    applied = 0
    for g in grants:
        user = user_repo.get_by_username(user_keys.get(g["user_key"], g["user_key"]))
        media = media_repo.get_by_key(media_keys.get(g["media_key"], g["media_key"]))
        granter = user_repo.get_by_username(user_keys.get(g["granted_by"], g["granted_by"]))
        if not user or not media or not granter:
            print(f"⚠️ Droit ignoré (référence inconnue): {g}")
            continue
        try:
            svc.grant(user.id, media.id, granted_by=granter.id)
        except NotFound as e:
            print(f"⚠️ Droit ignoré: {g} ({e.detail})")
            continue
        applied += 1

    print(f"✅ {applied} droits appliqués.")
    return applied


# ------------------------------------------------------------
# Seed All
# ------------------------------------------------------------
def seed_all(session: Session, seed_path: str | Path) -> Dict[str, int]:
    data = load_seed_yaml(seed_path)

    return {
        "users": seed_users(session, data),
        "media": seed_media(session, data),
        "grants": seed_grants(session, data),
    }
