# tests/api/test_streams.py
"""Tests for livestream token, ingress and active room endpoints."""

import asyncio
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi import status
from jose import jwt
from livekit import api as lkapi

from huddle.models import Community, LiveStream
from huddle.services import livestream
from huddle.services.livestream import (
    LivestreamError,
    LivestreamIssuer,
    build_video_grants,
    get_livestream_issuer,
)

API_KEY = "APItestkey"
API_SECRET = "livekit-test-secret-0123456789abcdefghij"
LIVEKIT_URL = "wss://livekit.test"


def at(minutes: int) -> datetime:
    return datetime(2025, 1, 1, tzinfo=UTC) + timedelta(minutes=minutes)


class FakeIngressService:
    """Stands in for ``LiveKitAPI.ingress`` and records every request."""

    def __init__(self) -> None:
        self.requests: list = []
        self.error: Exception | None = None

    async def create_ingress(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            ingress_id="IN_abc123",
            url="rtmp://ingress.test/live",
            stream_key="sk_secret",
        )


class FakeLiveKitAPI:
    def __init__(self, ingress: FakeIngressService, **options) -> None:
        self.ingress = ingress
        self.options = options
        self.close_calls = 0

    async def aclose(self) -> None:
        self.close_calls += 1


@pytest.fixture()
def livekit(monkeypatch):
    """Replace the LiveKit server client; the returned namespace exposes what it saw."""
    fake = SimpleNamespace(service=FakeIngressService(), clients=[])

    def _connect(**options):
        client = FakeLiveKitAPI(fake.service, **options)
        fake.clients.append(client)
        return client

    monkeypatch.setattr(livestream.lkapi, "LiveKitAPI", _connect)
    return fake


@pytest.fixture()
def use_issuer(app):
    def _install(issuer: LivestreamIssuer) -> LivestreamIssuer:
        app.dependency_overrides[get_livestream_issuer] = lambda: issuer
        return issuer

    yield _install
    app.dependency_overrides.pop(get_livestream_issuer, None)


@pytest.mark.parametrize(("role", "can_publish"), [("streamer", True), ("viewer", False), ("host", False)])
def test_video_grants(role: str, can_publish: bool) -> None:
    grants = build_video_grants("room-1", role)
    assert grants.room_join is True
    assert grants.room == "room-1"
    assert grants.can_publish is can_publish
    assert grants.can_subscribe is True


class TestStreamToken:
    def _claims(self, token: str) -> dict:
        return jwt.decode(token, API_SECRET, algorithms=["HS256"])

    def test_streamer_may_publish(self, client, use_issuer) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET))
        response = client.post(
            "/api/streams/token",
            json={"room": "room-1", "username": "alice", "role": "streamer"},
        )
        assert response.status_code == status.HTTP_200_OK
        claims = self._claims(response.json()["token"])
        assert claims["sub"] == "alice"
        assert claims["iss"] == API_KEY
        assert claims["video"]["room"] == "room-1"
        assert claims["video"]["canPublish"] is True
        assert claims["video"]["canSubscribe"] is True

    def test_token_carries_identity_only(self, client, use_issuer) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET))
        response = client.post("/api/streams/token", json={"room": "room-1", "username": "bob"})
        claims = self._claims(response.json()["token"])
        assert claims["sub"] == "bob"
        assert "name" not in claims

    def test_role_defaults_to_viewer(self, client, use_issuer) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET))
        response = client.post("/api/streams/token", json={"room": "room-1", "username": "bob"})
        claims = self._claims(response.json()["token"])
        assert claims["video"].get("canPublish", False) is False
        assert claims["video"]["canSubscribe"] is True

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"username": "bob"}, 'Missing "room" property'),
            ({"room": "room-1"}, 'Missing "username" property'),
        ],
    )
    def test_missing_fields(self, client, use_issuer, body, message) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET))
        response = client.post("/api/streams/token", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": message}

    def test_missing_credentials(self, client, use_issuer) -> None:
        use_issuer(LivestreamIssuer(None, None))
        response = client.post("/api/streams/token", json={"room": "room-1", "username": "bob"})
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Server misconfigured"}


class TestIngress:
    def test_creates_rtmp_ingress(self, client, use_issuer, livekit) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET, LIVEKIT_URL))
        response = client.post(
            "/api/streams/ingress",
            json={"roomName": "room-1", "streamerName": "bob", "communityId": "c-1"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "ingressId": "IN_abc123",
            "url": "rtmp://ingress.test/live",
            "streamKey": "sk_secret",
        }

        [request] = livekit.service.requests
        assert request.input_type == lkapi.IngressInput.RTMP_INPUT
        assert request.name == "bob-ingress"
        assert request.room_name == "room-1"
        assert request.participant_identity == "bob"
        assert request.participant_name == "bob"

        [connection] = livekit.clients
        assert connection.options == {
            "url": LIVEKIT_URL,
            "api_key": API_KEY,
            "api_secret": API_SECRET,
        }
        assert connection.close_calls == 1

    def test_missing_params(self, client, use_issuer, livekit) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET, LIVEKIT_URL))
        response = client.post("/api/streams/ingress", json={"roomName": "room-1"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing required params"}
        assert livekit.clients == []

    def test_missing_url_is_misconfiguration(self, client, use_issuer, livekit) -> None:
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET, None))
        response = client.post(
            "/api/streams/ingress", json={"roomName": "room-1", "streamerName": "alice"}
        )
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Server misconfigured"}
        assert livekit.clients == []

    def test_upstream_failure_is_not_echoed(self, client, use_issuer, livekit) -> None:
        livekit.service.error = RuntimeError("twirp error: unavailable")
        use_issuer(LivestreamIssuer(API_KEY, API_SECRET, LIVEKIT_URL))
        response = client.post(
            "/api/streams/ingress", json={"roomName": "room-1", "streamerName": "alice"}
        )
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Internal Error"}
        assert "twirp" not in response.text
        [connection] = livekit.clients
        assert connection.close_calls == 1

    def test_issuer_wraps_upstream_errors(self, livekit) -> None:
        livekit.service.error = ConnectionError("refused")
        issuer = LivestreamIssuer(API_KEY, API_SECRET, LIVEKIT_URL)

        with pytest.raises(LivestreamError) as excinfo:
            asyncio.run(issuer.create_ingress("room-1", "alice"))

        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert livekit.clients[0].close_calls == 1


class TestActiveStreams:
    def test_lists_live_rooms_newest_update_first(self, client, make_row, community, alice) -> None:
        older = make_row(
            LiveStream,
            community_id=community.id,
            streamer_id=alice.id,
            room_name="owls-morning",
            status="live",
            updated_at=at(5),
        )
        newer = make_row(
            LiveStream,
            community_id=community.id,
            room_name="owls-night",
            title="Late show",
            status="live",
            updated_at=at(10),
        )
        make_row(
            LiveStream,
            community_id=community.id,
            room_name="owls-done",
            status="ended",
            updated_at=at(20),
        )

        response = client.get("/api/streams/active")
        assert response.status_code == status.HTTP_200_OK
        streams = response.json()["streams"]
        assert [s["id"] for s in streams] == [newer.id, older.id]
        assert streams[0]["title"] == "Late show"
        assert streams[1]["streamer_id"] == alice.id
        assert streams[0]["community"] == {
            "id": community.id,
            "name": "Night Owls",
            "image_url": None,
        }

    def test_no_live_rooms(self, client) -> None:
        response = client.get("/api/streams/active")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"streams": []}

    def test_falls_back_without_community_join(self, client, engine, make_row, community) -> None:
        stream = make_row(
            LiveStream, community_id=community.id, room_name="owls", status="live", updated_at=at(1)
        )
        Community.__table__.drop(engine)

        response = client.get("/api/streams/active")
        assert response.status_code == status.HTTP_200_OK
        [item] = response.json()["streams"]
        assert item["id"] == stream.id
        assert item["community"] is None

    def test_store_failure(self, client, engine) -> None:
        LiveStream.__table__.drop(engine)
        response = client.get("/api/streams/active")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Internal Error"}
