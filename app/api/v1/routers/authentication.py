"""
Sessions des comptes de la médiathèque.

Le refresh token circule dans le body (clients API) ou dans un cookie httpOnly limité
à AUTH_COOKIE_PATH (navigateur qui ouvre le lecteur). Les deux voies mènent au même service.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from app.api.v1.dependencies import (
    ClientContext,
    get_auth_service,
    get_client_ip_and_ua,
    get_current_user,
)
from app.core.config import settings
from app.db.models.users import User
from app.features.authentication.schemas import LogoutIn, RefreshIn, SignInIn, TokenPairOut
from app.features.authentication.services import AuthService
from app.features.users.schemas import UserOut

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={401: {"description": "Identifiants ou token invalides"}},
)

RefreshCookie = Cookie(default=None, alias=settings.AUTH_REFRESH_COOKIE_NAME)


def _presented_refresh(body_token: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    # Le body l'emporte : un client API peut porter un vieux cookie
    return body_token or cookie_token


def _store_refresh(response: Response, pair: TokenPairOut) -> TokenPairOut:
    response.set_cookie(
        settings.AUTH_REFRESH_COOKIE_NAME,
        pair.refresh_token,
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        path=settings.AUTH_COOKIE_PATH,
        secure=settings.AUTH_COOKIE_SECURE,
        httponly=True,
        samesite=settings.AUTH_COOKIE_SAMESITE,
    )
    return pair


@router.post(
    "/sign-in",
    summary="Ouvrir une session",
    description="Admin ou client. L'access token sert ensuite à demander des tokens de lecture.",
    response_model=TokenPairOut,
)
def sign_in(
    payload: SignInIn,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
    client: ClientContext = Depends(get_client_ip_and_ua),
):
    pair = svc.sign_in(payload, ip=client.ip, user_agent=client.user_agent)
    return _store_refresh(response, pair)


@router.post(
    "/refresh",
    summary="Rotation du refresh token",
    description="Le refresh présenté (body ou cookie) est révoqué et remplacé.",
    response_model=TokenPairOut,
)
def refresh(
    response: Response,
    payload: Optional[RefreshIn] = None,
    refresh_cookie: Optional[str] = RefreshCookie,
    svc: AuthService = Depends(get_auth_service),
    client: ClientContext = Depends(get_client_ip_and_ua),
):
    token = _presented_refresh(payload.refresh_token if payload else None, refresh_cookie)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")
    pair = svc.refresh(RefreshIn(refresh_token=token), ip=client.ip, user_agent=client.user_agent)
    return _store_refresh(response, pair)


@router.post(
    "/logout",
    summary="Fermer la session",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(
    response: Response,
    payload: Optional[LogoutIn] = None,
    refresh_cookie: Optional[str] = RefreshCookie,
    svc: AuthService = Depends(get_auth_service),
):
    token = _presented_refresh(payload.refresh_token if payload else None, refresh_cookie)
    if token:
        svc.log_out(LogoutIn(refresh_token=token))
    response.delete_cookie(settings.AUTH_REFRESH_COOKIE_NAME, path=settings.AUTH_COOKIE_PATH)


@router.get(
    "/me",
    summary="Compte de la session courante",
    response_model=UserOut,
)
def me(user: User = Depends(get_current_user)):
    return user
