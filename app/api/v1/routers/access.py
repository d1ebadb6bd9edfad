from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import get_access_grant_service, require_admin
from app.db.models.users import User
from app.features.access.schemas import GrantOut, MediaIdsOut, RevokedOut, UserIdsOut
from app.features.access.services import AccessGrantService

router = APIRouter(
    prefix="/access",
    tags=["access"],
    responses={
        401: {"description": "Non authentifié"},
        403: {"description": "Réservé aux administrateurs"},
        404: {"description": "Utilisateur ou média introuvable"},
    },
)

@router.put(
    "/{media_id}/users/{user_id}",
    summary="Accorder l'accès à un média",
    description="Idempotent : accorder deux fois le même couple ne crée qu'une ligne.",
    response_model=GrantOut,
)
def grant_access(
    media_id: int,
    user_id: int,
    admin: User = Depends(require_admin),
    svc: AccessGrantService = Depends(get_access_grant_service),
):
    return svc.grant(user_id, media_id, granted_by=admin.id)

@router.delete(
    "/{media_id}/users/{user_id}",
    summary="Retirer l'accès à un média",
    description="Idempotent. Les tokens déjà émis restent valables jusqu'à leur expiration.",
    status_code=status.HTTP_204_NO_CONTENT,
)
def revoke_access(
    media_id: int,
    user_id: int,
    _: User = Depends(require_admin),
    svc: AccessGrantService = Depends(get_access_grant_service),
):
    svc.revoke(user_id, media_id)
    return None

@router.delete(
    "/{media_id}",
    summary="Retirer tous les accès à un média",
    response_model=RevokedOut,
)
def revoke_all_access(
    media_id: int,
    _: User = Depends(require_admin),
    svc: AccessGrantService = Depends(get_access_grant_service),
):
    return RevokedOut(media_id=media_id, revoked=svc.revoke_all_for_media(media_id))

@router.get(
    "/users/{user_id}",
    summary="Médias accessibles à un utilisateur",
    response_model=MediaIdsOut,
)
def list_media_for_user(
    user_id: int,
    _: User = Depends(require_admin),
    svc: AccessGrantService = Depends(get_access_grant_service),
):
    return MediaIdsOut(user_id=user_id, media_ids=sorted(svc.list_for_user(user_id)))

@router.get(
    "/media/{media_id}",
    summary="Utilisateurs ayant accès à un média",
    response_model=UserIdsOut,
)
def list_users_for_media(
    media_id: int,
    _: User = Depends(require_admin),
    svc: AccessGrantService = Depends(get_access_grant_service),
):
    return UserIdsOut(media_id=media_id, user_ids=sorted(svc.list_for_media(media_id)))
