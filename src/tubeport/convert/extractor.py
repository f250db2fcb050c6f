"""Playlist reference parsing."""

from __future__ import annotations

import re

_PLAYLIST_RE = re.compile(r"playlist/([a-zA-Z0-9]+)")


def extract_playlist_id(reference: str) -> str | None:
    """Return the playlist id found in *reference*, or ``None``.

    The pattern may appear anywhere in the string, so full URLs with query
    strings (``https://open.spotify.com/playlist/37i9...?si=abc``) work as
    well as bare ``playlist/<id>`` fragments.
    """
    match = _PLAYLIST_RE.search(reference)
    return match.group(1) if match else None
