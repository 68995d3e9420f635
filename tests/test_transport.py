import asyncio

import httpx
import pytest

from cadence_client.core.auth import TokenStore
from cadence_client.core.errors import RequestError
from cadence_client.schemas.track import TrackCreate
from cadence_client.services.transport import Transport, decode_body, error_message


def test_error_message_prefers_json_message_then_text_then_reason():
    assert error_message({"message": "bad json"}, "Bad Request") == "bad json"
    assert error_message("not found\n", "Not Found") == "not found"
    assert error_message({"detail": "x"}, "Unauthorized") == "Unauthorized"
    assert error_message(None, "") == "Request failed"


def test_decode_body():
    assert decode_body("") is None
    assert decode_body('{"a": 1}') == {"a": 1}
    assert decode_body("plain text") == "plain text"


def test_bearer_header_only_on_authenticated_calls(make_client, backend):
    async def main():
        client = make_client()
        await client.api.me()
        await client.api.login("me@example.com", "hunter22")

    asyncio.run(main())
    headers = dict(backend.auth_headers)
    assert headers["/api/me"] == "Bearer tok-123"
    assert headers["/api/auth/login"] is None


def test_login_stores_token_and_logout_clears(make_client, backend):
    async def main():
        client = make_client(token=None)
        with pytest.raises(RequestError) as exc:
            await client.api.me()
        assert exc.value.status_code == 401
        assert str(exc.value) == "unauthorized"

        await client.api.login("me@example.com", "hunter22")
        me = await client.api.me()
        client.api.logout()
        return client, me

    client, me = asyncio.run(main())
    assert me.user_id == "u-1"
    assert client.transport.credentials.token is None


def test_plain_text_errors_are_surfaced(make_client, backend):
    async def main():
        client = make_client(token=None)
        await client.api.login("me@example.com", "wrong")

    with pytest.raises(RequestError, match="^invalid credentials$") as exc:
        asyncio.run(main())
    assert exc.value.status_code == 401


def test_signup_rejects_short_password(make_client):
    async def main():
        await make_client(token=None).api.signup("me@example.com", "short")

    with pytest.raises(RequestError, match="password must be >= 8 chars"):
        asyncio.run(main())


def test_track_calls_round_trip(make_client, backend):
    backend.add_track("t-9", title="Tempo run")

    async def main():
        api = make_client().api
        listed = await api.list_tracks()
        detail = await api.get_track("t-9")
        created = await api.create_track(
            TrackCreate(source_filename="b.wav", mime_type="audio/wav", original_object_key="uploads/b.wav")
        )
        return listed, detail, created

    listed, detail, created = asyncio.run(main())
    assert [t.id for t in listed] == ["t-9"]
    assert detail.track.display_title == "Tempo run"
    assert detail.analysis is None and detail.latest_render is None
    assert created.id == "t-2"
    assert created.display_title == "b.wav"


def test_unknown_track_is_a_request_error(make_client):
    async def main():
        await make_client().api.get_track("nope")

    with pytest.raises(RequestError, match="^not found$") as exc:
        asyncio.run(main())
    assert exc.value.status_code == 404


def test_unexpected_success_body_is_a_request_error(make_client, backend):
    backend.analysis_script = [{"bpm": 1.0}]

    async def main():
        await make_client().api.get_analysis("t-1")

    with pytest.raises(RequestError, match=r"^Unexpected response from server \(Analysis\)$") as exc:
        asyncio.run(main())
    assert exc.value.status_code is None


def test_network_failure_becomes_request_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def main():
        http = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        transport = Transport("http://api.test", TokenStore(), client=http)
        await transport.request("/api/tracks")

    with pytest.raises(RequestError, match="connection refused") as exc:
        asyncio.run(main())
    assert exc.value.status_code is None


def test_token_is_read_on_each_request():
    seen = []

    def handler(request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json=[])

    store = TokenStore()

    async def main():
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = Transport("http://api.test/", store, client=http)
        await transport.request("/api/tracks")
        store.set("first")
        await transport.request("/api/tracks")
        store.set("second")
        await transport.request("/api/tracks")

    asyncio.run(main())
    assert seen == [None, "Bearer first", "Bearer second"]
