"""Conversion orchestrator: drives one Spotify → YouTube playlist conversion."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from tubeport.convert.errors import (
    AddItemError,
    AuthError,
    ConversionError,
    InvalidReferenceError,
    SearchError,
)
from tubeport.convert.extractor import extract_playlist_id
from tubeport.convert.models import ConversionRun, RunState, TrackConversionState, TrackStatus
from tubeport.convert.progress import ProgressSnapshot

if TYPE_CHECKING:
    from tubeport.config import AppConfig
    from tubeport.convert.progress import ProgressReporter
    from tubeport.convert.spotify import SpotifyCatalogClient
    from tubeport.convert.youtube import YouTubeClient

log = structlog.get_logger(__name__)

SETUP_CHECKPOINT = 30

MSG_ADDED = "added"
MSG_NOT_FOUND = "no match on target platform"
MSG_SEARCH_FAILED = "search failed"
MSG_ADD_FAILED = "failed to add"


def track_progress(done: int, total: int) -> int:
    """Overall progress after *done* of *total* tracks are finished."""
    if total <= 0:
        return 100
    return SETUP_CHECKPOINT + (100 - SETUP_CHECKPOINT) * done // total


class ConversionOrchestrator:
    """Runs the conversion state machine and reports every transition."""

    def __init__(
        self,
        config: AppConfig,
        *,
        reporter: ProgressReporter | None = None,
        source_factory: Callable[[AppConfig], SpotifyCatalogClient] | None = None,
        target_factory: Callable[[AppConfig], YouTubeClient] | None = None,
    ) -> None:
        self._config = config
        self._reporter = reporter
        self._source_factory = source_factory
        self._target_factory = target_factory
        self._lock = asyncio.Lock()
        self._run: ConversionRun | None = None

    @property
    def run(self) -> ConversionRun | None:
        return self._run

    @property
    def state(self) -> RunState:
        return self._run.state if self._run else RunState.IDLE

    async def convert(self, reference: str, target_token: str) -> ConversionRun:
        """Convert the playlist named by *reference*.

        Fatal errors, and any unexpected exception, abort the run and are
        re-raised; the aborted run stays available through :attr:`run`.
        """
        if self._lock.locked():
            raise RuntimeError("Conversion already in progress")

        async with self._lock:
            run = ConversionRun(reference=reference)
            self._run = run
            with structlog.contextvars.bound_contextvars(reference=reference):
                await self._run_guarded(run, target_token)
            return run

    async def _run_guarded(self, run: ConversionRun, target_token: str) -> None:
        """Execute the pipeline; every failure leaves *run* aborted and reported."""
        try:
            await self._do_convert(run, target_token)
        except ConversionError as exc:
            run.state = RunState.ABORTED
            run.error = str(exc)
            log.error("conversion_aborted", error=run.error, kind=type(exc).__name__)
            self._emit(run)
            raise
        except Exception as exc:
            run.state = RunState.ABORTED
            run.error = f"Unexpected error: {exc!r}"
            log.exception("conversion_crashed")
            self._emit(run)
            raise

    # -- pipeline --

    async def _do_convert(self, run: ConversionRun, target_token: str) -> None:
        playlist_id = extract_playlist_id(run.reference)
        if playlist_id is None:
            raise InvalidReferenceError(f"Not a playlist reference: {run.reference!r}")
        if not target_token:
            raise AuthError("No YouTube access token available")

        log.info("conversion_start", playlist_id=playlist_id)
        run.state = RunState.FETCHING_SOURCE
        self._emit(run)

        async with self._create_source() as source:
            source_token = await source.authenticate()
            playlist, tracks = await source.fetch_playlist(playlist_id, source_token)

        run.source_playlist = playlist
        run.tracks = [TrackConversionState(position=i, track=t) for i, t in enumerate(tracks)]
        run.state = RunState.CONVERTING
        run.advance_progress(SETUP_CHECKPOINT)
        log.info("source_fetched", playlist_id=playlist_id, name=playlist.name, tracks=len(tracks))
        self._emit(run)

        if run.tracks:
            async with self._create_target() as target:
                for state in run.tracks:
                    await self._ensure_target_playlist(run, target, target_token)
                    await self._convert_track(run, state, target, target_token)

        run.state = RunState.COMPLETED
        run.advance_progress(100)
        log.info(
            "conversion_completed",
            target_playlist_id=run.target_playlist_id,
            added=run.added,
            not_found=run.not_found,
            errors=run.errors,
        )
        self._emit(run)

    async def _ensure_target_playlist(self, run: ConversionRun, target: YouTubeClient, token: str) -> str:
        """Create the destination playlist once per run and memoise its id."""
        if run.target_playlist_id is not None:
            return run.target_playlist_id

        assert run.source_playlist is not None  # noqa: S101
        playlist_id = await target.create_playlist(run.source_playlist, token)
        run.set_target_playlist(playlist_id)
        log.info("target_playlist_created", target_playlist_id=playlist_id)
        return playlist_id

    async def _convert_track(
        self,
        run: ConversionRun,
        state: TrackConversionState,
        target: YouTubeClient,
        token: str,
    ) -> None:
        track = state.track
        try:
            video_id = await target.resolve_track(track, token)
        except SearchError as exc:
            log.warning("track_search_failed", position=state.position, title=track.title, error=str(exc))
            state.finish(TrackStatus.ERROR, MSG_SEARCH_FAILED)
        else:
            if video_id is None:
                log.info("track_not_found", position=state.position, title=track.title)
                state.finish(TrackStatus.NOT_FOUND, MSG_NOT_FOUND)
            else:
                assert run.target_playlist_id is not None  # noqa: S101
                try:
                    await target.add_video(run.target_playlist_id, video_id, token)
                except AddItemError as exc:
                    log.warning(
                        "track_add_failed",
                        position=state.position,
                        title=track.title,
                        video_id=video_id,
                        error=str(exc),
                    )
                    state.finish(TrackStatus.ERROR, MSG_ADD_FAILED)
                else:
                    log.info("track_added", position=state.position, title=track.title, video_id=video_id)
                    state.finish(TrackStatus.FOUND_ADDED, MSG_ADDED)

        run.advance_progress(track_progress(run.finished_count, len(run.tracks)))
        self._emit(run, changed_position=state.position)

    # -- collaborators --

    def _create_source(self) -> SpotifyCatalogClient:
        if self._source_factory:
            return self._source_factory(self._config)
        from tubeport.convert.spotify import SpotifyCatalogClient

        return SpotifyCatalogClient(self._config.spotify, timeout=self._config.general.http_timeout)

    def _create_target(self) -> YouTubeClient:
        if self._target_factory:
            return self._target_factory(self._config)
        from tubeport.convert.youtube import YouTubeClient

        return YouTubeClient(
            privacy_status=self._config.youtube.privacy_status,
            timeout=self._config.general.http_timeout,
        )

    def _emit(self, run: ConversionRun, *, changed_position: int | None = None) -> None:
        if self._reporter is not None:
            self._reporter.on_progress(ProgressSnapshot.from_run(run, changed_position=changed_position))
