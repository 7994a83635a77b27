"""Domain models for the broadcast session read model."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

VideoRef = Dict[str, Any]

ZERO_UPTIME = "00:00:00"


class PlatformStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SessionKind(str, Enum):
    """Source of the live content. Values are the server's ``stream_type``."""

    LIVE_ENCODER = "obs"
    PLAYLIST = "playlist"
    NONE = "none"


class RemoteHealth(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


@dataclass(frozen=True)
class PlatformTarget:
    id: str
    name: str
    enabled: bool = False
    rtmp_url: Optional[str] = None
    stream_key: Optional[str] = None
    status: PlatformStatus = PlatformStatus.DISCONNECTED


@dataclass(frozen=True)
class PlaylistPlaybackState:
    playlist_id: int
    name: str
    videos: Tuple[VideoRef, ...]
    current_video_index: int = 0
    is_playing: bool = True
    loop: bool = True
    shuffle: bool = False

    def __post_init__(self) -> None:
        if not self.videos:
            raise ValueError("playback state requires at least one video")
        if not 0 <= self.current_video_index < len(self.videos):
            raise ValueError(f"video index {self.current_video_index} out of range")

    @property
    def current_video(self) -> VideoRef:
        return self.videos[self.current_video_index]


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a consumer can observe about the broadcast.

    ``start_time`` is set exactly while ``is_live`` is true and ``playback``
    exists exactly while ``session_kind`` is ``PLAYLIST``; the orchestrator's
    merge keeps both pairs consistent.
    """

    is_live: bool = False
    stream_url: str = ""
    title: str = ""
    viewers: int = 0
    bitrate: int = 0
    uptime: str = ZERO_UPTIME
    duration_seconds: int = 0
    start_time: Optional[dt.datetime] = None
    application_name: str = "live"
    stream_name: str = ""
    session_kind: SessionKind = SessionKind.NONE
    remote_health: RemoteHealth = RemoteHealth.OFFLINE
    platforms: Tuple[PlatformTarget, ...] = field(default_factory=tuple)
    playback: Optional[PlaylistPlaybackState] = None

    def platform(self, platform_id: str) -> Optional[PlatformTarget]:
        return next((p for p in self.platforms if p.id == platform_id), None)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat() if self.start_time else None
        data["session_kind"] = self.session_kind.value
        data["remote_health"] = self.remote_health.value
        data["platforms"] = [{**p, "status": p["status"].value} for p in data["platforms"]]
        if data["playback"] is not None:
            data["playback"]["videos"] = list(data["playback"]["videos"])
        return data


def idle_fields() -> Dict[str, Any]:
    """Field values of a snapshot with no active session."""
    return {
        "is_live": False,
        "stream_url": "",
        "viewers": 0,
        "bitrate": 0,
        "uptime": ZERO_UPTIME,
        "duration_seconds": 0,
        "start_time": None,
        "stream_name": "",
        "session_kind": SessionKind.NONE,
        "remote_health": RemoteHealth.OFFLINE,
        "playback": None,
    }


def format_uptime(seconds: int) -> str:
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_uptime(value: str) -> int:
    """Inverse of :func:`format_uptime`; raises ``ValueError`` on bad input."""
    parts = [int(part) for part in value.split(":")]
    if len(parts) != 3 or any(part < 0 for part in parts):
        raise ValueError(f"invalid uptime {value!r}")
    hours, minutes, secs = parts
    return hours * 3600 + minutes * 60 + secs
