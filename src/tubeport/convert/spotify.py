"""Async Spotify Web API client (source side) using httpx.

Endpoints:
- POST /api/token (client-credentials exchange)
- GET /playlists/{id} (metadata + first page of tracks)
- GET ``tracks.next`` links (remaining pages)
"""

from __future__ import annotations

import html

import httpx
import structlog

from tubeport.config import SpotifyConfig
from tubeport.convert.errors import AuthError, PlaylistNotFoundError, SourceFetchError
from tubeport.convert.models import PlaylistDescriptor, TrackDescriptor

log = structlog.get_logger(__name__)

_API_BASE = "https://api.spotify.com/v1"
_TOKEN_URL = "https://accounts.spotify.com/api/token"  # noqa: S105
_UNKNOWN_ARTIST = "Unknown"


# ---------------------------------------------------------------------------
# Payload mapping
# ---------------------------------------------------------------------------


def _smallest_image(images: list[dict] | None) -> str | None:
    """Pick the lowest-resolution image URL.

    Spotify lists album images largest first; when widths are present the
    narrowest one wins, otherwise the last entry is taken.
    """
    if not images:
        return None
    sized = [img for img in images if img.get("width")]
    if sized:
        return min(sized, key=lambda img: img["width"]).get("url")
    return images[-1].get("url")


def playlist_from_payload(data: dict) -> PlaylistDescriptor:
    """Map a ``GET /playlists/{id}`` response onto :class:`PlaylistDescriptor`."""
    images = data.get("images") or []
    tracks = data.get("tracks") or {}
    return PlaylistDescriptor(
        name=data.get("name") or "",
        description=html.unescape(data.get("description") or ""),
        cover_image_url=images[0].get("url") if images else None,
        track_count=int(tracks.get("total") or 0),
    )


def track_from_payload(item: dict) -> TrackDescriptor | None:
    """Map one playlist item onto :class:`TrackDescriptor`.

    Returns ``None`` for items without a track object (removed or local-only
    entries).
    """
    track = item.get("track")
    if not track:
        return None

    artists = tuple(a["name"] for a in track.get("artists") or [] if a.get("name"))
    album = track.get("album") or {}
    return TrackDescriptor(
        title=track.get("name") or "",
        artists=artists or (_UNKNOWN_ARTIST,),
        album_name=album.get("name") or "",
        album_image_url=_smallest_image(album.get("images")),
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class SpotifyCatalogClient:
    """Reads public playlist data with an app-only access token."""

    def __init__(
        self,
        config: SpotifyConfig,
        *,
        timeout: float = 30.0,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._transport = _transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SpotifyCatalogClient:
        kw: dict = {"timeout": self._timeout}
        if self._transport is not None:
            kw["transport"] = self._transport
        self._client = httpx.AsyncClient(**kw)
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # -- auth --

    async def authenticate(self) -> str:
        """Exchange the client credentials for an access token."""
        assert self._client is not None  # noqa: S101

        client_secret = self._config.client_secret.get_secret_value()
        if not self._config.client_id or not client_secret:
            raise AuthError("Spotify client credentials are not configured")

        try:
            resp = await self._client.post(
                _TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self._config.client_id, client_secret),
            )
        except httpx.RequestError as exc:
            raise AuthError(f"Spotify token request failed: {exc}") from exc

        if not resp.is_success:
            raise AuthError(f"Spotify token exchange failed: {resp.status_code} {resp.text}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise AuthError("Spotify token response is not valid JSON") from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise AuthError("Spotify token response did not contain an access token")
        return token

    # -- request helper --

    async def _get(self, url: str, token: str) -> dict:
        assert self._client is not None  # noqa: S101

        try:
            resp = await self._client.get(url, headers={"Authorization": f"Bearer {token}"})
        except httpx.RequestError as exc:
            raise SourceFetchError(f"Network error while fetching playlist: {exc}") from exc

        if resp.status_code == 404:
            raise PlaylistNotFoundError("Spotify playlist not found")
        if not resp.is_success:
            raise SourceFetchError(f"Spotify API error: {resp.status_code} {resp.text}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise SourceFetchError("Spotify returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise SourceFetchError("Spotify returned an unexpected response body")
        return body

    # -- public API --

    async def fetch_playlist(
        self,
        playlist_id: str,
        token: str,
    ) -> tuple[PlaylistDescriptor, list[TrackDescriptor]]:
        """Fetch playlist metadata and its full ordered track list."""
        data = await self._get(f"{_API_BASE}/playlists/{playlist_id}", token)
        playlist = playlist_from_payload(data)

        tracks: list[TrackDescriptor] = []
        page = data.get("tracks") or {}
        skipped = 0
        while True:
            for item in page.get("items") or []:
                track = track_from_payload(item)
                if track is None:
                    skipped += 1
                    continue
                tracks.append(track)

            next_url = page.get("next")
            if not next_url:
                break
            page = await self._get(next_url, token)

        if skipped:
            log.info("source_items_skipped", playlist_id=playlist_id, skipped=skipped)

        return playlist, tracks
