import logging
from datetime import timedelta

import pytest

from app.core.errors import InvalidToken, NotFound, RangeNotSatisfiable, TokenExpired
from app.db.repositories.media import MediaRepository
from app.features.streaming.gateway import StreamGateway
from app.utils.byte_store import LocalByteStore

pytestmark = pytest.mark.anyio


def _token(ticket) -> str:
    return ticket.stream_url.split("token=", 1)[1]


async def _collect(body) -> bytes:
    out = b""
    async for chunk in body:
        out += chunk
    return out


# -----------------------------
# Service
# -----------------------------
async def test_full_body(gateway, token_svc, admin, video, asset_bytes):
    token = _token(token_svc.issue(admin.id, video.id))

    result = await gateway.handle_request(token, None, media_id=video.id)

    assert result.status == 200
    assert result.headers["Content-Length"] == "1000"
    assert "Content-Range" not in result.headers
    assert await _collect(result.body) == asset_bytes


async def test_partial_content(gateway, token_svc, admin, video, asset_bytes):
    token = _token(token_svc.issue(admin.id, video.id))

    result = await gateway.handle_request(token, "bytes=0-99", media_id=video.id)

    assert result.status == 206
    assert result.headers["Content-Range"] == "bytes 0-99/1000"
    assert result.headers["Content-Length"] == "100"
    assert result.headers["Accept-Ranges"] == "bytes"
    body = await _collect(result.body)
    assert len(body) == 100
    assert body == asset_bytes[:100]


async def test_out_of_bounds_range(gateway, token_svc, admin, video):
    token = _token(token_svc.issue(admin.id, video.id))
    with pytest.raises(RangeNotSatisfiable) as exc:
        await gateway.handle_request(token, "bytes=2000-3000", media_id=video.id)
    assert exc.value.headers["Content-Range"] == "bytes */1000"


async def test_role_headers(gateway, token_svc, access_svc, admin, alice, video):
    access_svc.grant(alice.id, video.id, granted_by=admin.id)

    as_client = await gateway.handle_request(_token(token_svc.issue(alice.id, video.id)), None, head_only=True)
    as_admin = await gateway.handle_request(_token(token_svc.issue(admin.id, video.id)), None, head_only=True)

    assert (as_client.headers["X-Role"], as_client.headers["X-Watermark-Required"]) == ("client", "true")
    assert (as_admin.headers["X-Role"], as_admin.headers["X-Watermark-Required"]) == ("admin", "false")
    assert as_client.body is None


async def test_expired_token(gateway, token_svc, admin, video, clock):
    ticket = token_svc.issue(admin.id, video.id)
    clock.now = ticket.expires_at + timedelta(seconds=1)
    with pytest.raises(TokenExpired):
        await gateway.handle_request(_token(ticket), "bytes=0-99")


async def test_token_for_other_media(gateway, token_svc, admin, video, missing_file_media):
    token = _token(token_svc.issue(admin.id, video.id))
    with pytest.raises(InvalidToken):
        await gateway.handle_request(token, None, media_id=missing_file_media.id)


async def test_missing_bytes(gateway, token_svc, admin, missing_file_media):
    token = _token(token_svc.issue(admin.id, missing_file_media.id))
    with pytest.raises(NotFound):
        await gateway.handle_request(token, None)


async def test_media_removed_after_issue(session, gateway, token_svc, admin, video):
    token = _token(token_svc.issue(admin.id, video.id))
    video.is_active = False
    session.add(video)
    session.commit()
    with pytest.raises(NotFound):
        await gateway.handle_request(token, None)


async def test_content_type_sniffed_when_not_declared(session, token_svc, admin, media_root):
    # en-tête PNG, extension trompeuse
    (media_root / "blob.bin").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    media = MediaRepository(session).create(title="Blob", media_type="image", object_key="blob.bin")
    gw = StreamGateway(token_svc=token_svc, media_repo=MediaRepository(session), byte_store=LocalByteStore(media_root))

    result = await gw.handle_request(_token(token_svc.issue(admin.id, media.id)), None, head_only=True)

    assert result.headers["Content-Type"] == "image/png"
    assert result.headers["X-Content-Type-Options"] == "nosniff"


async def test_disconnect_releases_stream(caplog, gateway, token_svc, admin, video):
    caplog.set_level(logging.INFO, logger="app.features.streaming.gateway")
    token = _token(token_svc.issue(admin.id, video.id))
    result = await gateway.handle_request(token, None)

    first = await result.body.__anext__()
    assert len(first) == 64
    await result.body.aclose()

    assert any("aborted after 64/1000" in r.getMessage() for r in caplog.records)


async def test_path_traversal_is_not_found(session, token_svc, admin, gateway):
    media = MediaRepository(session).create(title="Escape", media_type="document", object_key="../../etc/passwd")
    with pytest.raises(NotFound):
        await gateway.handle_request(_token(token_svc.issue(admin.id, media.id)), None)
