"""Async YouTube Data API v3 client (target side) using httpx.

Endpoints:
- GET /search (type=video, maxResults=1)
- POST /playlists (create)
- GET /playlists?mine=true (list the user's playlists)
- POST /playlistItems (append one video)

Every call takes the user's OAuth access token explicitly; this client never
obtains or refreshes tokens itself.
"""

from __future__ import annotations

import httpx
import structlog

from tubeport.config import PrivacyStatus
from tubeport.convert.errors import (
    AddItemError,
    ConversionError,
    PlaylistCreateError,
    SearchError,
    TargetAPIError,
)
from tubeport.convert.models import PlaylistDescriptor, TargetPlaylist, TrackDescriptor

log = structlog.get_logger(__name__)

_API_BASE = "https://www.googleapis.com/youtube/v3"
_DEFAULT_TITLE = "New Playlist"
_DEFAULT_DESCRIPTION = "Created via tubeport"
_LIST_PAGE_SIZE = 50


def build_search_query(track: TrackDescriptor) -> str:
    """Title followed by every artist name, space-joined."""
    return " ".join([track.title, *track.artists])


def _error_message(resp: httpx.Response) -> str:
    """Extract ``error.message`` from a Google API error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or str(resp.status_code)
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return resp.text or str(resp.status_code)


class YouTubeClient:
    """Resolves tracks to videos and builds playlists on YouTube."""

    def __init__(
        self,
        *,
        privacy_status: PrivacyStatus = "private",
        timeout: float = 30.0,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._privacy_status = privacy_status
        self._timeout = timeout
        self._transport = _transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> YouTubeClient:
        kw: dict = {"timeout": self._timeout, "base_url": _API_BASE}
        if self._transport is not None:
            kw["transport"] = self._transport
        self._client = httpx.AsyncClient(**kw)
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # -- request helper --

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        error_cls: type[ConversionError],
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict:
        """Issue one request; any failure is raised as *error_cls*."""
        assert self._client is not None  # noqa: S101

        try:
            resp = await self._client.request(
                method,
                path,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
                json=json,
            )
        except httpx.RequestError as exc:
            raise error_cls(f"Network error: {exc}") from exc

        if not resp.is_success:
            raise error_cls(f"YouTube API error {resp.status_code}: {_error_message(resp)}")
        if not resp.content:
            return {}

        try:
            body = resp.json()
        except ValueError as exc:
            raise error_cls(f"YouTube returned a non-JSON response ({resp.status_code})") from exc
        if not isinstance(body, dict):
            raise error_cls("YouTube returned an unexpected response body")
        return body

    # -- resolution --

    async def resolve_track(self, track: TrackDescriptor, token: str) -> str | None:
        """Return the video id of the top search hit, or ``None``."""
        data = await self._request(
            "GET",
            "/search",
            token,
            error_cls=SearchError,
            params={
                "part": "snippet",
                "q": build_search_query(track),
                "type": "video",
                "maxResults": 1,
            },
        )
        items = data.get("items") or []
        if not items:
            return None
        return (items[0].get("id") or {}).get("videoId")

    # -- playlists --

    async def create_playlist(self, descriptor: PlaylistDescriptor, token: str) -> str:
        """Create a playlist mirroring *descriptor* and return its id.

        Not idempotent: each call creates a new playlist.
        """
        data = await self._request(
            "POST",
            "/playlists",
            token,
            error_cls=PlaylistCreateError,
            params={"part": "snippet,status"},
            json={
                "snippet": {
                    "title": descriptor.name or _DEFAULT_TITLE,
                    "description": descriptor.description or _DEFAULT_DESCRIPTION,
                },
                "status": {"privacyStatus": self._privacy_status},
            },
        )
        playlist_id = data.get("id")
        if not playlist_id:
            raise PlaylistCreateError("YouTube did not return a playlist id")
        return playlist_id

    async def add_video(self, playlist_id: str, video_id: str, token: str) -> None:
        """Append one video to an existing playlist."""
        await self._request(
            "POST",
            "/playlistItems",
            token,
            error_cls=AddItemError,
            params={"part": "snippet"},
            json={
                "snippet": {
                    "playlistId": playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": video_id},
                },
            },
        )

    async def list_playlists(self, token: str) -> list[TargetPlaylist]:
        """Fetch every playlist owned by the authenticated user."""
        playlists: list[TargetPlaylist] = []
        page_token: str | None = None

        while True:
            params: dict = {"part": "snippet", "mine": "true", "maxResults": _LIST_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = await self._request("GET", "/playlists", token, error_cls=TargetAPIError, params=params)

            for item in data.get("items") or []:
                if not item.get("id"):
                    continue
                snippet = item.get("snippet") or {}
                thumb = (snippet.get("thumbnails") or {}).get("default") or {}
                playlists.append(
                    TargetPlaylist(
                        id=item["id"],
                        title=snippet.get("title") or "",
                        description=snippet.get("description") or "",
                        thumbnail_url=thumb.get("url"),
                    )
                )

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return playlists
