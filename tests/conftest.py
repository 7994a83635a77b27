"""Shared fakes and fixtures for the session controller tests."""

import asyncio
import datetime as dt
from typing import Any, Dict, List, Optional

import pytest
from dateutil.tz import tzutc

from stream_session.config import ControllerConfig
from stream_session.errors import NotFoundError
from stream_session.models import PlatformTarget
from stream_session.session_manager import SessionOrchestrator


def make_videos(count: int) -> List[Dict[str, Any]]:
    return [{"id": i, "titulo": f"Video {i}"} for i in range(1, count + 1)]


class FakeClock:
    def __init__(self):
        self.now = dt.datetime(2024, 5, 1, 12, 0, 0, tzinfo=tzutc())

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += dt.timedelta(seconds=seconds)


class FakeStreamingApi:
    """In-memory stand-in for StreamingApiClient."""

    def __init__(self):
        self.playlists: Dict[int, Dict[str, Any]] = {}
        self.videos: Dict[int, List[Dict[str, Any]]] = {}
        self.start_result: Any = {"success": True, "stream_url": "rtmp://media/live/pl", "stream_name": "pl"}
        self.stop_result: Any = {"success": True}
        self.status_result: Any = {"success": True, "is_live": False}
        self.start_gate: Optional[asyncio.Event] = None
        self.status_gate: Optional[asyncio.Event] = None
        self.start_calls: List[Dict[str, Any]] = []
        self.stop_calls: List[str] = []
        self.status_calls = 0
        self.closed = False

    def add_playlist(self, playlist_id: int, name: str, videos: List[Dict[str, Any]]) -> None:
        self.playlists[playlist_id] = {"id": playlist_id, "nome": name}
        self.videos[playlist_id] = videos

    async def get_playlist(self, playlist_id: int) -> Dict[str, Any]:
        if playlist_id not in self.playlists:
            raise NotFoundError(playlist_id)
        return self.playlists[playlist_id]

    async def get_playlist_videos(self, playlist_id: int) -> List[Dict[str, Any]]:
        return list(self.videos.get(playlist_id, []))

    async def start_internal(self, playlist_id, title, videos, loop, shuffle) -> Dict[str, Any]:
        self.start_calls.append(
            {"playlist_id": playlist_id, "titulo": title, "videos": videos, "loop": loop, "shuffle": shuffle}
        )
        if self.start_gate is not None:
            await self.start_gate.wait()
        if isinstance(self.start_result, Exception):
            raise self.start_result
        return self.start_result

    async def stop_internal(self, stream_type: str) -> Dict[str, Any]:
        self.stop_calls.append(stream_type)
        if isinstance(self.stop_result, Exception):
            raise self.stop_result
        return self.stop_result

    async def get_status(self) -> Dict[str, Any]:
        self.status_calls += 1
        if self.status_gate is not None:
            await self.status_gate.wait()
        if isinstance(self.status_result, Exception):
            raise self.status_result
        return self.status_result

    def close(self) -> None:
        self.closed = True


class FakeIntegration:
    """Platform integration that answers immediately, or fails on demand."""

    def __init__(self):
        self.fail_connect: Optional[Exception] = None
        self.fail_disconnect: Optional[Exception] = None
        self.connected: List[str] = []
        self.disconnected: List[str] = []

    async def connect(self, target: PlatformTarget) -> None:
        await asyncio.sleep(0)
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected.append(target.id)

    async def disconnect(self, target: PlatformTarget) -> None:
        await asyncio.sleep(0)
        if self.fail_disconnect is not None:
            raise self.fail_disconnect
        self.disconnected.append(target.id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_api():
    api = FakeStreamingApi()
    api.add_playlist(7, "Morning Show", make_videos(3))
    return api


@pytest.fixture
def integration():
    return FakeIntegration()


@pytest.fixture
def orchestrator(fake_api, integration, clock):
    return SessionOrchestrator(ControllerConfig(), fake_api, integration=integration, clock=clock)
