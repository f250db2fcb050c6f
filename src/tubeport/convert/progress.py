"""Progress snapshots and the observer protocol the orchestrator notifies."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tubeport.convert.models import ConversionRun, RunState, TrackStatus


@dataclass(frozen=True)
class TrackSnapshot:
    position: int
    title: str
    artists: tuple[str, ...]
    status: TrackStatus
    message: str


@dataclass(frozen=True)
class ProgressSnapshot:
    """Immutable view of a :class:`ConversionRun` after one state transition."""

    state: RunState
    overall_progress: int | None
    tracks: tuple[TrackSnapshot, ...]
    changed_position: int | None = None
    target_playlist_id: str | None = None
    error: str | None = None

    @classmethod
    def from_run(cls, run: ConversionRun, *, changed_position: int | None = None) -> ProgressSnapshot:
        return cls(
            state=run.state,
            overall_progress=run.overall_progress,
            tracks=tuple(
                TrackSnapshot(
                    position=t.position,
                    title=t.track.title,
                    artists=t.track.artists,
                    status=t.status,
                    message=t.message,
                )
                for t in run.tracks
            ),
            changed_position=changed_position,
            target_playlist_id=run.target_playlist_id,
            error=run.error,
        )

    @property
    def changed_track(self) -> TrackSnapshot | None:
        if self.changed_position is None:
            return None
        return self.tracks[self.changed_position]


class ProgressReporter(Protocol):
    """Passive sink for progress snapshots."""

    def on_progress(self, snapshot: ProgressSnapshot) -> None: ...


class CallbackReporter:
    """Adapt a plain callable to the :class:`ProgressReporter` protocol."""

    def __init__(self, callback: Callable[[ProgressSnapshot], None]) -> None:
        self._callback = callback

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        self._callback(snapshot)
