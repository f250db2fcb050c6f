"""Domain model for a single playlist conversion run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class PlaylistDescriptor:
    """Identity and descriptive metadata for a playlist on either platform."""

    name: str
    description: str = ""
    cover_image_url: str | None = None
    track_count: int = 0


@dataclass(frozen=True)
class TrackDescriptor:
    """One track's searchable identity."""

    title: str
    artists: tuple[str, ...]
    album_name: str = ""
    album_image_url: str | None = None


@dataclass(frozen=True)
class TargetPlaylist:
    """A playlist already owned by the user on the target platform."""

    id: str
    title: str
    description: str = ""
    thumbnail_url: str | None = None


class TrackStatus(StrEnum):
    PENDING = "pending"
    FOUND_ADDED = "added"
    NOT_FOUND = "not found"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not TrackStatus.PENDING


class RunState(StrEnum):
    IDLE = "idle"
    FETCHING_SOURCE = "fetching_source"
    CONVERTING = "converting"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class TrackConversionState:
    """Per-track record, keyed by its position in the source playlist."""

    position: int
    track: TrackDescriptor
    status: TrackStatus = TrackStatus.PENDING
    message: str = ""

    def finish(self, status: TrackStatus, message: str) -> None:
        """Move to a terminal status.  Allowed exactly once."""
        if not status.is_terminal:
            raise RuntimeError(f"{status.value!r} is not a terminal status")
        if self.status.is_terminal:
            raise RuntimeError(f"Track {self.position} already finished as {self.status.value!r}")
        self.status = status
        self.message = message


@dataclass
class ConversionRun:
    """Top-level aggregate for one conversion invocation."""

    reference: str
    state: RunState = RunState.IDLE
    source_playlist: PlaylistDescriptor | None = None
    tracks: list[TrackConversionState] = field(default_factory=list)
    target_playlist_id: str | None = None
    overall_progress: int | None = None  # None = not started
    error: str | None = None

    def set_target_playlist(self, playlist_id: str) -> None:
        if self.target_playlist_id is not None:
            raise RuntimeError("Target playlist already set for this run")
        self.target_playlist_id = playlist_id

    def advance_progress(self, value: int) -> None:
        """Raise overall progress, never lowering it."""
        value = max(0, min(100, value))
        if self.overall_progress is None or value > self.overall_progress:
            self.overall_progress = value

    @property
    def finished_count(self) -> int:
        return sum(1 for t in self.tracks if t.status.is_terminal)

    def _count(self, status: TrackStatus) -> int:
        return sum(1 for t in self.tracks if t.status is status)

    @property
    def added(self) -> int:
        return self._count(TrackStatus.FOUND_ADDED)

    @property
    def not_found(self) -> int:
        return self._count(TrackStatus.NOT_FOUND)

    @property
    def errors(self) -> int:
        return self._count(TrackStatus.ERROR)
