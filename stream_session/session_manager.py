"""Own the session snapshot and apply every command to it."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import random
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Protocol

import requests
from dateutil.tz import tzutc

from . import sequencer
from .api_client import StreamingApiClient
from .config import ControllerConfig
from .errors import EmptyPlaylistError, StreamStartError, StreamStopError
from .models import (
    PlatformStatus,
    PlatformTarget,
    RemoteHealth,
    SessionKind,
    SessionSnapshot,
    format_uptime,
    idle_fields,
    parse_uptime,
)
from .notifier import Notifier
from .platforms import (
    CONFIGURABLE_FIELDS,
    PlatformConnector,
    PlatformIntegration,
    SimulatedIntegration,
    default_platforms,
    merge_platform,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]

# Errors the HTTP client raises for transport failures and unreadable bodies.
REMOTE_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError)


def utcnow() -> dt.datetime:
    return dt.datetime.now(tzutc())


class SessionTimers(Protocol):
    def schedule(self) -> None: ...

    def cancel(self) -> None: ...


class SessionOrchestrator:
    """Coordinates remote calls, platform connections and playlist playback.

    ``snapshot`` is the only state; it is replaced, never mutated, by
    :meth:`update_snapshot`. Results of remote calls are merged into whatever
    the snapshot is when the call returns. ``generation`` increases every
    time a live session ends so an in-flight start can tell it was
    superseded.
    """

    def __init__(
        self,
        config: ControllerConfig,
        api: StreamingApiClient,
        integration: Optional[PlatformIntegration] = None,
        notifier: Optional[Notifier] = None,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.api = api
        self.notifier = notifier or Notifier(config.notifier)
        self.clock = clock
        self.rng = rng
        self.connector = PlatformConnector(
            self,
            integration
            or SimulatedIntegration(config.session.connect_delay, config.session.disconnect_delay),
        )
        self.timers: Optional[SessionTimers] = None
        self.generation = 0
        self._snapshot = SessionSnapshot(
            application_name=config.session.application_name,
            platforms=default_platforms(),
        )

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    def update_snapshot(self, **changes: Any) -> SessionSnapshot:
        """Merge ``changes`` into the snapshot in one step.

        Starts or cancels the recurring timers when ``is_live`` flips.
        """
        previous = self._snapshot
        merged = self._normalize(replace(previous, **changes))
        self._snapshot = merged
        if previous.is_live != merged.is_live and self.timers is not None:
            if merged.is_live:
                self.timers.schedule()
            else:
                self.timers.cancel()
        return merged

    def _normalize(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        if not snapshot.is_live and snapshot.start_time is not None:
            snapshot = replace(snapshot, start_time=None)
        elif snapshot.is_live and snapshot.start_time is None:
            snapshot = replace(snapshot, start_time=self.clock())
        if snapshot.session_kind is SessionKind.PLAYLIST:
            if snapshot.playback is None:
                raise ValueError("a playlist session needs a playback state")
        elif snapshot.playback is not None:
            snapshot = replace(snapshot, playback=None)
        return snapshot

    async def _notify(self, subject: str, message: str) -> None:
        if self.notifier.enabled:
            await asyncio.to_thread(self.notifier.notify, subject, message)

    # ------------------------------------------------------------ sessions

    async def start_playlist_session(
        self, playlist_id: int, loop: bool = True, shuffle: bool = False
    ) -> SessionSnapshot:
        generation = self.generation
        try:
            playlist = await self.api.get_playlist(playlist_id)
            videos = await self.api.get_playlist_videos(playlist_id)
        except REMOTE_ERRORS as exc:
            logger.error("Failed to load playlist %s: %s", playlist_id, exc)
            raise StreamStartError(f"Failed to load playlist {playlist_id}: {exc}") from exc
        if not videos:
            raise EmptyPlaylistError(playlist_id)

        title = playlist.get("nome", "")
        playback = sequencer.build_playback(playlist_id, title, videos, loop=loop, shuffle=shuffle, rng=self.rng)

        try:
            result = await self.api.start_internal(playlist_id, title, list(playback.videos), loop, shuffle)
        except REMOTE_ERRORS as exc:
            logger.error("Failed to start playlist %s: %s", playlist_id, exc)
            raise StreamStartError(str(exc)) from exc
        if not result.get("success"):
            reason = result.get("error") or "Failed to start playlist"
            logger.error("Server refused to start playlist %s: %s", playlist_id, reason)
            raise StreamStartError(reason)
        if generation != self.generation:
            logger.warning("Discarding start of playlist %s: session was stopped meanwhile", playlist_id)
            raise StreamStartError("Session was stopped while the start request was in flight")

        self.update_snapshot(
            is_live=True,
            stream_url=result.get("stream_url") or "",
            stream_name=result.get("stream_name") or "",
            title=title,
            start_time=self.clock(),
            viewers=0,
            bitrate=self.config.session.nominal_bitrate,
            uptime=format_uptime(0),
            duration_seconds=0,
            remote_health=RemoteHealth.ONLINE,
            session_kind=SessionKind.PLAYLIST,
            playback=playback,
        )
        logger.info("Playlist %s (%s) is live with %d videos", playlist_id, title, len(playback.videos))
        await self._notify(f"Playlist {title} started", f"Playlist {playlist_id} is now live.")
        return self.snapshot

    async def stop_stream(self) -> SessionSnapshot:
        stream_type = self.snapshot.session_kind.value
        try:
            result = await self.api.stop_internal(stream_type)
        except REMOTE_ERRORS as exc:
            logger.error("Failed to stop %s stream: %s", stream_type, exc)
            raise StreamStopError(str(exc)) from exc
        if not result.get("success"):
            reason = result.get("error") or "Failed to stop stream"
            logger.error("Server refused to stop %s stream: %s", stream_type, reason)
            raise StreamStopError(reason)

        self.generation += 1
        self.update_snapshot(**idle_fields())
        logger.info("Stream stopped")
        await self._notify("Stream stopped", f"The {stream_type} stream was stopped.")
        return self.snapshot

    async def refresh_stream_status(self) -> SessionSnapshot:
        """Overlay the server's view of the transmission. Never raises.

        A response that arrives after the session it was requested for has
        ended is dropped.
        """
        generation = self.generation
        try:
            result = await self.api.get_status()
            changes = self._status_changes(result)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Stream status poll failed: %s", exc)
            return self.update_snapshot(remote_health=RemoteHealth.ERROR)

        if generation != self.generation:
            logger.debug("Discarding status poll issued before the session ended")
            return self.snapshot

        was_live = self.snapshot.is_live
        self.update_snapshot(**changes)
        if was_live and not changes["is_live"]:
            self.generation += 1
            logger.warning("Server reports the stream is no longer live")
            await self._notify("Stream ended", "The server reports the transmission is no longer live.")
        return self.snapshot

    def _status_changes(self, result: Dict[str, Any]) -> Dict[str, Any]:
        transmission = result.get("transmission")
        if not (result.get("success") and result.get("is_live") and transmission):
            return idle_fields()

        stats = transmission["stats"]
        changes: Dict[str, Any] = {
            "is_live": True,
            "viewers": max(0, int(stats["viewers"])),
            "bitrate": max(0, int(stats["bitrate"])),
            "uptime": stats["uptime"],
            "title": transmission.get("titulo") or self.snapshot.title,
            "remote_health": RemoteHealth.ONLINE,
        }
        if not self.snapshot.is_live:
            # Live on the server but not here: a session started elsewhere.
            elapsed = parse_uptime(stats["uptime"])
            changes["start_time"] = self.clock() - dt.timedelta(seconds=elapsed)
            changes["duration_seconds"] = elapsed
            changes["session_kind"] = SessionKind.LIVE_ENCODER
        return changes

    def tick_elapsed(self) -> None:
        snapshot = self.snapshot
        if not snapshot.is_live or snapshot.start_time is None:
            return
        elapsed = int((self.clock() - snapshot.start_time).total_seconds())
        self.update_snapshot(uptime=format_uptime(elapsed), duration_seconds=max(0, elapsed))

    # ----------------------------------------------------------- platforms

    def get_platform(self, platform_id: str) -> Optional[PlatformTarget]:
        return self.snapshot.platform(platform_id)

    def set_platform_status(self, platform_id: str, status: PlatformStatus) -> None:
        self.update_snapshot(platforms=merge_platform(self.snapshot.platforms, platform_id, {"status": status}))

    def update_platform_config(self, platform_id: str, **changes: Any) -> None:
        unknown = set(changes) - CONFIGURABLE_FIELDS
        if unknown:
            raise ValueError(f"Not configurable: {', '.join(sorted(unknown))}")
        if self.get_platform(platform_id) is None:
            return
        self.update_snapshot(platforms=merge_platform(self.snapshot.platforms, platform_id, changes))

    async def connect_to_platform(self, platform_id: str) -> None:
        await self.connector.connect(platform_id)

    async def disconnect_from_platform(self, platform_id: str) -> None:
        await self.connector.disconnect(platform_id)

    # ------------------------------------------------------------ playback

    async def next_video(self) -> None:
        playback = self.snapshot.playback
        if playback is None:
            return
        following = sequencer.advance(playback)
        if following is not None:
            self.update_snapshot(playback=following)
            return
        logger.info("Reached the end of playlist %s, stopping", playback.playlist_id)
        try:
            await self.stop_stream()
        except StreamStopError as exc:
            logger.error("Could not stop after the last video: %s", exc)

    def previous_video(self) -> None:
        if self.snapshot.playback is not None:
            self.update_snapshot(playback=sequencer.retreat(self.snapshot.playback))

    def play_video(self, index: int) -> None:
        if self.snapshot.playback is not None:
            self.update_snapshot(playback=sequencer.seek(self.snapshot.playback, index))

    def toggle_play_pause(self) -> None:
        if self.snapshot.playback is not None:
            self.update_snapshot(playback=sequencer.toggle_play_pause(self.snapshot.playback))
