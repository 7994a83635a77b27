"""Exceptions raised by the stream session controller."""

from __future__ import annotations

from typing import Optional


class StreamSessionError(Exception):
    """Base class for every error a session command can raise."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"


class NotFoundError(StreamSessionError):
    """The requested playlist does not exist on the server."""

    def __init__(self, playlist_id: int, message: Optional[str] = None):
        super().__init__(message or f"Playlist {playlist_id} not found")
        self.playlist_id = playlist_id


class PlaylistLoadError(StreamSessionError):
    pass


class EmptyPlaylistError(StreamSessionError):

    def __init__(self, playlist_id: int):
        super().__init__(f"Playlist {playlist_id} has no videos")
        self.playlist_id = playlist_id


class StreamStartError(StreamSessionError):
    pass


class StreamStopError(StreamSessionError):
    pass


class ConnectorError(StreamSessionError):
    """A platform connect/disconnect failed or was not a valid transition."""

    def __init__(self, platform_id: str, message: str):
        super().__init__(message)
        self.platform_id = platform_id
