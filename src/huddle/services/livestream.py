"""LiveKit access tokens and RTMP ingress endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from livekit import api as lkapi

from huddle.core.settings import Settings, settings
from huddle.schemas.stream import ROLE_STREAMER

logger = logging.getLogger(__name__)


class LivestreamConfigError(RuntimeError):
    """Raised when LiveKit credentials are missing from the environment."""


class LivestreamError(RuntimeError):
    """Raised when the LiveKit service rejects or fails a request."""


@dataclass(frozen=True)
class IngressCredentials:
    """Connection details an encoder needs to push into a room."""

    ingress_id: str
    url: str
    stream_key: str


def build_video_grants(room: str, role: str) -> lkapi.VideoGrants:
    """Return room grants; only streamers may publish, everyone may subscribe."""
    return lkapi.VideoGrants(
        room_join=True,
        room=room,
        can_publish=role == ROLE_STREAMER,
        can_subscribe=True,
    )


class LivestreamIssuer:
    """Mints LiveKit grants and ingress endpoints from server-side credentials."""

    def __init__(self, api_key: str | None, api_secret: str | None, url: str | None = None) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.url = url

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> LivestreamIssuer:
        config = config or settings
        return cls(config.livekit_api_key, config.livekit_api_secret, config.livekit_url)

    def _require_credentials(self, *, need_url: bool = False) -> None:
        if not self.api_key or not self.api_secret:
            raise LivestreamConfigError("LiveKit API key/secret not configured")
        if need_url and not self.url:
            raise LivestreamConfigError("LiveKit URL not configured")

    def mint_token(self, room: str, identity: str, role: str) -> str:
        """Return a signed JWT letting ``identity`` join ``room`` with ``role``."""
        self._require_credentials()
        return (
            lkapi.AccessToken(api_key=self.api_key, api_secret=self.api_secret)
            .with_identity(identity)
            .with_grants(build_video_grants(room, role))
            .to_jwt()
        )

    async def create_ingress(self, room_name: str, streamer_name: str) -> IngressCredentials:
        """Create an RTMP ingress publishing into ``room_name`` as ``streamer_name``."""
        self._require_credentials(need_url=True)
        client = lkapi.LiveKitAPI(url=self.url, api_key=self.api_key, api_secret=self.api_secret)
        try:
            info = await client.ingress.create_ingress(
                lkapi.CreateIngressRequest(
                    input_type=lkapi.IngressInput.RTMP_INPUT,
                    name=f"{streamer_name}-ingress",
                    room_name=room_name,
                    participant_identity=streamer_name,
                    participant_name=streamer_name,
                )
            )
        except Exception as exc:
            raise LivestreamError(f"Ingress creation failed: {exc}") from exc
        finally:
            await client.aclose()

        logger.info("Created ingress %s for room %s", info.ingress_id, room_name)
        return IngressCredentials(
            ingress_id=info.ingress_id,
            url=info.url,
            stream_key=info.stream_key,
        )


def get_livestream_issuer() -> LivestreamIssuer:
    """Return an issuer configured from the process settings."""
    return LivestreamIssuer.from_settings()
