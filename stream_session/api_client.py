"""Client for the streaming backend's playlist and transmission endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from .config import ApiConfig
from .errors import NotFoundError, PlaylistLoadError
from .models import VideoRef

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str]


class StreamingApiClient:
    """Wrapper around the streaming backend REST API.

    Every public method is a coroutine; the blocking ``requests`` call runs in
    a worker thread. Transport failures surface as
    :class:`requests.RequestException`, malformed bodies as ``ValueError``.
    """

    def __init__(self, config: ApiConfig, token_provider: Optional[TokenProvider] = None):
        self.config = config
        self.token_provider = token_provider or (lambda: config.token)
        self.http = requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token_provider()}"}

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.http.request(
            method,
            self._url(path),
            json=payload,
            headers=self._headers(),
            timeout=self.config.timeout,
        )

    def _get_playlist(self, playlist_id: int) -> Dict[str, Any]:
        response = self._request("GET", f"/api/playlists/{playlist_id}")
        if not response.ok:
            logger.warning("Playlist %s lookup returned HTTP %s", playlist_id, response.status_code)
            raise NotFoundError(playlist_id)
        return response.json()

    def _get_playlist_videos(self, playlist_id: int) -> List[VideoRef]:
        response = self._request("GET", f"/api/playlists/{playlist_id}/videos")
        if not response.ok:
            raise PlaylistLoadError(f"Failed to load videos of playlist {playlist_id} (HTTP {response.status_code})")
        return [item["videos"] for item in response.json()]

    def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", path, payload)
        return response.json()

    def _get_json(self, path: str) -> Dict[str, Any]:
        return self._request("GET", path).json()

    async def get_playlist(self, playlist_id: int) -> Dict[str, Any]:
        return await asyncio.to_thread(self._get_playlist, playlist_id)

    async def get_playlist_videos(self, playlist_id: int) -> List[VideoRef]:
        return await asyncio.to_thread(self._get_playlist_videos, playlist_id)

    async def start_internal(
        self, playlist_id: int, title: str, videos: List[VideoRef], loop: bool, shuffle: bool
    ) -> Dict[str, Any]:
        body = {
            "playlist_id": playlist_id,
            "titulo": title,
            "videos": videos,
            "options": {"loop": loop, "shuffle": shuffle},
        }
        logger.info("Requesting internal stream for playlist %s (%d videos)", playlist_id, len(videos))
        return await asyncio.to_thread(self._post_json, "/api/streaming/start-internal", body)

    async def stop_internal(self, stream_type: str) -> Dict[str, Any]:
        logger.info("Requesting stop of %s stream", stream_type)
        return await asyncio.to_thread(self._post_json, "/api/streaming/stop-internal", {"stream_type": stream_type})

    async def get_status(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._get_json, "/api/streaming/status")

    def close(self) -> None:
        self.http.close()
