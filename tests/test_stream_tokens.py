import base64
import json
import logging
from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import stream_token_settings
from app.core.errors import Forbidden, InvalidToken, NotFound, TokenExpired
from app.core.logging import AUDIT_LOGGER
from app.db.repositories.refresh_tokens import RefreshTokenRepository
from app.security.tokens import StreamTokenSettings, create_stream_token

TTL = stream_token_settings.ttl


def _token(ticket) -> str:
    return ticket.stream_url.split("token=", 1)[1]


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _audit_events(caplog):
    return [r.audit["event"] for r in caplog.records if r.name == AUDIT_LOGGER]


# -----------------------------
# issue
# -----------------------------
def test_client_without_grant_is_forbidden(token_svc, alice, video):
    with pytest.raises(Forbidden):
        token_svc.issue(alice.id, video.id)


def test_client_with_grant_gets_ticket(token_svc, access_svc, admin, alice, video, clock):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)

    ticket = token_svc.issue(alice.id, video.id)

    assert ticket.role == "client"
    assert ticket.watermark_required is True
    assert ticket.expires_at == clock.now + TTL
    assert ticket.stream_url.startswith(f"/api/v1/stream/{video.id}?token=")
    assert ticket.refresh_url.startswith("/api/v1/playback/renew?token=")
    assert ticket.media_type == "video"
    assert ticket.content_type == "video/mp4"
    assert ticket.thumbnail_url == "/static/thumbnails/intro.jpg"


def test_admin_bypasses_grant_check(token_svc, admin, video):
    ticket = token_svc.issue(admin.id, video.id)
    assert ticket.role == "admin"
    assert ticket.watermark_required is False


def test_issue_unknown_user_or_media(token_svc, admin):
    with pytest.raises(NotFound):
        token_svc.issue(9999, 1)
    with pytest.raises(NotFound):
        token_svc.issue(admin.id, 9999)


def test_issue_inactive_media_not_found(session, token_svc, admin, video):
    video.is_active = False
    session.add(video)
    session.commit()
    with pytest.raises(NotFound):
        token_svc.issue(admin.id, video.id)


def test_ticket_serializes_camel_case(token_svc, admin, video):
    data = token_svc.issue(admin.id, video.id).model_dump(by_alias=True)
    assert {"streamUrl", "expiresAt", "watermarkRequired", "role", "refreshUrl"} <= set(data)


# -----------------------------
# validate
# -----------------------------
def test_token_valid_until_expires_at(token_svc, access_svc, admin, alice, video, clock):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    ticket = token_svc.issue(alice.id, video.id)
    token = _token(ticket)

    for _ in range(5):
        claims = token_svc.validate(token)
        assert (claims.user_id, claims.media_id, claims.role) == (alice.id, video.id, "client")
        clock.advance(seconds=TTL.total_seconds() / 5)

    assert clock.now == ticket.expires_at
    assert token_svc.validate(token).media_id == video.id


@pytest.mark.parametrize("after", [
    timedelta(microseconds=1),
    timedelta(seconds=1),
    timedelta(minutes=1),
    timedelta(days=30),
])
def test_token_past_expiry_always_expired(token_svc, admin, video, clock, after):
    ticket = token_svc.issue(admin.id, video.id)
    clock.now = ticket.expires_at + after
    with pytest.raises(TokenExpired):
        token_svc.validate(_token(ticket))


def test_validate_does_not_read_grants(token_svc, access_svc, admin, alice, video):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    token = _token(token_svc.issue(alice.id, video.id))
    access_svc.revoke(alice.id, video.id)

    assert token_svc.validate(token).user_id == alice.id


def test_tampered_claims_are_invalid(token_svc, admin, video, missing_file_media):
    token = _token(token_svc.issue(admin.id, video.id))
    header, payload, signature = token.split(".")

    claims = json.loads(_b64decode(payload))
    claims["mid"] = str(missing_file_media.id)
    forged = ".".join([header, _b64encode(json.dumps(claims).encode()), signature])

    with pytest.raises(InvalidToken):
        token_svc.validate(forged)


def test_any_altered_payload_char_is_invalid(token_svc, admin, video):
    token = _token(token_svc.issue(admin.id, video.id))
    header, payload, signature = token.split(".")

    for i, ch in enumerate(payload):
        altered = payload[:i] + ("B" if ch == "A" else "A") + payload[i + 1:]
        with pytest.raises(InvalidToken):
            token_svc.validate(".".join([header, altered, signature]))


def test_other_secret_is_invalid(token_svc, admin, video, clock):
    other = StreamTokenSettings(secret="not-the-server-secret", issuer=stream_token_settings.issuer)
    token, _ = create_stream_token(user_id=admin.id, media_id=video.id, role="admin", now=clock.now, settings=other)
    with pytest.raises(InvalidToken):
        token_svc.validate(token)


def test_session_token_is_not_a_stream_token(token_svc, clock):
    forged = jwt.encode(
        {"iss": stream_token_settings.issuer, "typ": "access", "sub": "1", "mid": "1", "role": "admin",
         "exp": int((clock.now + TTL).timestamp())},
        stream_token_settings.secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        token_svc.validate(forged)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "x" * 400])
def test_garbage_is_invalid(token_svc, garbage):
    with pytest.raises(InvalidToken):
        token_svc.validate(garbage)


# -----------------------------
# renew
# -----------------------------
def test_renew_issues_fresh_token(token_svc, access_svc, admin, alice, video, clock, user_session):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    first = token_svc.issue(alice.id, video.id, session_id=user_session(alice))

    clock.advance(minutes=4)
    second = token_svc.renew(_token(first))

    assert second.expires_at == clock.now + TTL
    assert second.expires_at > first.expires_at
    assert token_svc.validate(_token(second)).media_id == video.id


def test_renew_after_revoke_is_forbidden(token_svc, access_svc, admin, alice, video, user_session):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    ticket = token_svc.issue(alice.id, video.id, session_id=user_session(alice))
    access_svc.revoke(alice.id, video.id)

    with pytest.raises(Forbidden):
        token_svc.renew(_token(ticket))


def test_renew_expired_token_is_refused(token_svc, admin, video, clock):
    ticket = token_svc.issue(admin.id, video.id)
    clock.now = ticket.expires_at + timedelta(seconds=1)
    with pytest.raises(TokenExpired):
        token_svc.renew(_token(ticket))


def test_token_without_session_is_not_renewable(token_svc, admin, video):
    ticket = token_svc.issue(admin.id, video.id)
    with pytest.raises(Forbidden):
        token_svc.renew(_token(ticket))


def test_renew_keeps_session_and_chain_origin(token_svc, admin, video, clock, user_session):
    sid = user_session(admin)
    first = token_svc.issue(admin.id, video.id, session_id=sid)
    started = clock.now

    clock.advance(minutes=4)
    second = token_svc.renew(_token(first))

    claims = token_svc.validate(_token(second))
    assert claims.session_id == sid
    assert claims.chain_started_at == started.replace(microsecond=0)


def test_renew_refused_once_session_is_revoked(session, token_svc, admin, video, clock, user_session):
    sid = user_session(admin)
    ticket = token_svc.issue(admin.id, video.id, session_id=sid)

    RefreshTokenRepository(session).revoke(sid, now=clock.now)

    # le token lui-même reste valable jusqu'à son expiration
    assert token_svc.validate(_token(ticket)).user_id == admin.id
    with pytest.raises(TokenExpired):
        token_svc.renew(_token(ticket))


def test_renew_refused_past_renew_window(token_svc, admin, video, clock, user_session):
    ticket = token_svc.issue(admin.id, video.id, session_id=user_session(admin))
    step = TTL - timedelta(minutes=1)

    renewals = 0
    with pytest.raises(TokenExpired):
        while True:
            clock.advance(seconds=step.total_seconds())
            ticket = token_svc.renew(_token(ticket))
            renewals += 1

    window = stream_token_settings.renew_window
    assert step * renewals <= window < step * (renewals + 1)


# -----------------------------
# Audit
# -----------------------------
def test_audit_events(caplog, token_svc, access_svc, admin, alice, video, clock):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER)

    with pytest.raises(Forbidden):
        token_svc.issue(alice.id, video.id)
    ticket = token_svc.issue(admin.id, video.id)
    with pytest.raises(InvalidToken):
        token_svc.validate(_token(ticket) + "x")
    clock.now = ticket.expires_at + timedelta(seconds=1)
    with pytest.raises(TokenExpired):
        token_svc.validate(_token(ticket))

    assert _audit_events(caplog) == ["denied", "issued", "invalid", "expired"]
    invalid = [r for r in caplog.records if r.name == AUDIT_LOGGER and r.audit["event"] == "invalid"]
    assert invalid[0].levelno == logging.WARNING


def test_unknown_media_is_audited_for_every_role(caplog, token_svc, admin, alice):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER)

    for user in (alice, admin):
        with pytest.raises(NotFound):
            token_svc.issue(user.id, 9999)

    denied = [r.audit for r in caplog.records if r.name == AUDIT_LOGGER]
    assert [(a["event"], a["role"], a["reason"]) for a in denied] == [
        ("denied", "client", "media_not_found"),
        ("denied", "admin", "media_not_found"),
    ]


# -----------------------------
# HTTP
# -----------------------------
def test_issue_endpoint(client, auth, admin, alice, video, access_svc):
    r = client.post(f"/api/v1/playback/{video.id}/token", headers=auth(alice))
    assert r.status_code == 403

    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    r = client.post(f"/api/v1/playback/{video.id}/token", headers=auth(alice))
    assert r.status_code == 200
    body = r.json()
    assert body["watermarkRequired"] is True
    assert body["role"] == "client"
    assert body["streamUrl"].startswith(f"/api/v1/stream/{video.id}?token=")
    assert body["thumbnailUrl"] == "/static/thumbnails/intro.jpg"


def test_issue_endpoint_requires_session(client, video):
    r = client.post(f"/api/v1/playback/{video.id}/token")
    assert r.status_code in (401, 403)


def test_renew_endpoint(client, auth, admin, video, clock):
    ticket = client.post(f"/api/v1/playback/{video.id}/token", headers=auth(admin)).json()

    clock.advance(minutes=3)
    r = client.post(ticket["refreshUrl"])
    assert r.status_code == 200
    assert r.json()["streamUrl"] != ticket["streamUrl"]

    clock.advance(minutes=10)
    r = client.post(ticket["refreshUrl"])
    assert r.status_code == 401


def _sign_in(client, username: str) -> dict:
    r = client.post("/api/v1/auth/sign-in", json={"username": username, "password": "s3cret-pass"})
    assert r.status_code == 200
    return r.json()


def test_leaked_stream_url_stops_renewing_after_logout(client, admin, alice, video, clock, access_svc):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    pair = _sign_in(client, "alice")
    headers = {"Authorization": f"Bearer {pair['access_token']}"}
    leaked = client.post(f"/api/v1/playback/{video.id}/token", headers=headers).json()

    # Renouvellement sans en-tête Authorization : la session d'alice est ouverte
    clock.advance(minutes=4)
    r = client.post(leaked["refreshUrl"])
    assert r.status_code == 200
    latest = r.json()

    # alice ferme sa session : la chaîne s'arrête
    assert client.post("/api/v1/auth/logout", json={"refresh_token": pair["refresh_token"]}).status_code == 204
    clock.advance(minutes=4)
    assert client.post(latest["refreshUrl"]).status_code == 401

    # le dernier token vit jusqu'à son expiration, pas au-delà
    assert client.get(latest["streamUrl"], headers={"Range": "bytes=0-9"}).status_code == 206
    clock.advance(minutes=2)
    assert client.get(latest["streamUrl"], headers={"Range": "bytes=0-9"}).status_code == 401


def test_renewal_survives_session_rotation(client, admin, alice, video, clock, access_svc):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    pair = _sign_in(client, "alice")
    headers = {"Authorization": f"Bearer {pair['access_token']}"}
    ticket = client.post(f"/api/v1/playback/{video.id}/token", headers=headers).json()

    r = client.post("/api/v1/auth/refresh", json={"refresh_token": pair["refresh_token"]})
    assert r.status_code == 200

    clock.advance(minutes=4)
    assert client.post(ticket["refreshUrl"]).status_code == 200


def test_leaked_stream_url_renewal_is_capped(client, auth, admin, alice, video, clock, access_svc):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)
    ticket = client.post(f"/api/v1/playback/{video.id}/token", headers=auth(alice)).json()
    leaked_at = clock.now

    # Session ouverte, renouvellements sans session toutes les 4 minutes
    while True:
        clock.advance(minutes=4)
        r = client.post(ticket["refreshUrl"])
        if r.status_code != 200:
            break
        ticket = r.json()

    assert r.status_code == 401
    assert clock.now - leaked_at <= stream_token_settings.renew_window + timedelta(minutes=4)

    clock.advance(minutes=2)
    assert client.get(ticket["streamUrl"], headers={"Range": "bytes=0-9"}).status_code == 401
