"""Configuration helpers for the stream session controller."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ApiConfig:
    base_url: str = "http://localhost:3001"
    token: str = ""
    timeout: float = 10.0


@dataclass
class SessionConfig:
    tick_interval: float = 1.0
    poll_interval: float = 10.0
    nominal_bitrate: int = 2500
    application_name: str = "live"
    connect_delay: float = 2.0
    disconnect_delay: float = 1.0


@dataclass
class NotifierConfig:
    webhook_url: Optional[str] = None


@dataclass
class ControllerConfig:
    project_name: str = "Stream Session Controller"
    api: ApiConfig = field(default_factory=ApiConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)


def load_config() -> ControllerConfig:
    """Load configuration from environment variables."""
    api = ApiConfig(
        base_url=os.getenv("STREAM_API_URL", "http://localhost:3001"),
        token=os.getenv("STREAM_API_TOKEN", ""),
        timeout=float(os.getenv("STREAM_API_TIMEOUT", "10")),
    )

    session = SessionConfig(
        tick_interval=float(os.getenv("STREAM_TICK_INTERVAL", "1")),
        poll_interval=float(os.getenv("STREAM_POLL_INTERVAL", "10")),
        nominal_bitrate=int(os.getenv("STREAM_NOMINAL_BITRATE", "2500")),
        application_name=os.getenv("STREAM_APPLICATION_NAME", "live"),
        connect_delay=float(os.getenv("PLATFORM_CONNECT_DELAY", "2")),
        disconnect_delay=float(os.getenv("PLATFORM_DISCONNECT_DELAY", "1")),
    )

    return ControllerConfig(
        project_name=os.getenv("PROJECT_NAME", "Stream Session Controller"),
        api=api,
        session=session,
        notifier=NotifierConfig(webhook_url=os.getenv("NOTIFY_WEBHOOK_URL")),
    )
