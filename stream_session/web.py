"""FastAPI application exposing the session read model and commands."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .context import StreamSessionContext
from .errors import (
    ConnectorError,
    EmptyPlaylistError,
    NotFoundError,
    PlaylistLoadError,
    StreamStartError,
    StreamStopError,
)

logger = logging.getLogger(__name__)


class StartPlaylistPayload(BaseModel):
    playlist_id: int = Field(..., description="Server id of the playlist to broadcast.")
    loop: bool = True
    shuffle: bool = False


class PlatformConfigPayload(BaseModel):
    name: Optional[str] = None
    enabled: Optional[bool] = None
    rtmp_url: Optional[str] = None
    stream_key: Optional[str] = None


class SeekPayload(BaseModel):
    index: int


def create_app(context: Optional[StreamSessionContext] = None) -> FastAPI:
    context = context or StreamSessionContext()
    orchestrator = context.orchestrator
    app = FastAPI(title=context.config.project_name)

    def session_view() -> Dict[str, Any]:
        return orchestrator.snapshot.to_dict()

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/session")
    async def get_session() -> Dict[str, Any]:
        return session_view()

    @app.post("/session/playlist")
    async def start_playlist(payload: StartPlaylistPayload):
        try:
            await orchestrator.start_playlist_session(payload.playlist_id, loop=payload.loop, shuffle=payload.shuffle)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=exc.message) from exc
        except EmptyPlaylistError as exc:
            raise HTTPException(status_code=422, detail=exc.message) from exc
        except (PlaylistLoadError, StreamStartError) as exc:
            raise HTTPException(status_code=502, detail=exc.message) from exc
        return session_view()

    @app.post("/session/stop")
    async def stop_session():
        try:
            await orchestrator.stop_stream()
        except StreamStopError as exc:
            raise HTTPException(status_code=502, detail=exc.message) from exc
        return session_view()

    @app.post("/session/refresh")
    async def refresh_session():
        await orchestrator.refresh_stream_status()
        return session_view()

    @app.patch("/platforms/{platform_id}")
    async def configure_platform(platform_id: str, payload: PlatformConfigPayload):
        if orchestrator.get_platform(platform_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown platform {platform_id}")
        orchestrator.update_platform_config(platform_id, **payload.model_dump(exclude_unset=True))
        return session_view()

    @app.post("/platforms/{platform_id}/connect")
    async def connect_platform(platform_id: str):
        try:
            await orchestrator.connect_to_platform(platform_id)
        except ConnectorError as exc:
            raise HTTPException(status_code=409, detail=exc.message) from exc
        return session_view()

    @app.post("/platforms/{platform_id}/disconnect")
    async def disconnect_platform(platform_id: str):
        try:
            await orchestrator.disconnect_from_platform(platform_id)
        except ConnectorError as exc:
            raise HTTPException(status_code=409, detail=exc.message) from exc
        return session_view()

    @app.post("/playback/next")
    async def next_video():
        await orchestrator.next_video()
        return session_view()

    @app.post("/playback/previous")
    async def previous_video():
        orchestrator.previous_video()
        return session_view()

    @app.post("/playback/seek")
    async def seek_video(payload: SeekPayload):
        orchestrator.play_video(payload.index)
        return session_view()

    @app.post("/playback/toggle")
    async def toggle_playback():
        orchestrator.toggle_play_pause()
        return session_view()

    @app.on_event("startup")
    async def startup_event() -> None:
        await context.start()
        logger.info("Session control API ready")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        context.dispose()

    return app


app = create_app()
