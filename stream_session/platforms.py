"""Fan-out platform catalog and the per-platform connection state machine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Protocol, Set, Tuple

from .errors import ConnectorError
from .models import PlatformStatus, PlatformTarget

logger = logging.getLogger(__name__)

PLATFORM_CATALOG: Tuple[Tuple[str, str], ...] = (
    ("youtube", "YouTube"),
    ("instagram", "Instagram"),
    ("facebook", "Facebook"),
    ("twitch", "Twitch"),
    ("vimeo", "Vimeo"),
    ("tiktok", "TikTok"),
    ("periscope", "Periscope"),
    ("kwai", "Kwai"),
    ("steam", "Steam Valve"),
    ("rtmp", "Custom RTMP"),
)

# Statuses from which each command may start.
CONNECT_FROM: Set[PlatformStatus] = {PlatformStatus.DISCONNECTED}
DISCONNECT_FROM: Set[PlatformStatus] = {PlatformStatus.CONNECTED, PlatformStatus.ERROR}

CONFIGURABLE_FIELDS = frozenset({"name", "enabled", "rtmp_url", "stream_key"})


def default_platforms() -> Tuple[PlatformTarget, ...]:
    return tuple(PlatformTarget(id=platform_id, name=name) for platform_id, name in PLATFORM_CATALOG)


def merge_platform(
    platforms: Tuple[PlatformTarget, ...], platform_id: str, changes: Dict[str, Any]
) -> Tuple[PlatformTarget, ...]:
    """Return ``platforms`` with ``changes`` applied to the matching entry."""
    return tuple(replace(p, **changes) if p.id == platform_id else p for p in platforms)


class PlatformIntegration(Protocol):
    async def connect(self, target: PlatformTarget) -> None: ...

    async def disconnect(self, target: PlatformTarget) -> None: ...


class SimulatedIntegration:
    """Stand-in for a real platform integration: just waits."""

    def __init__(self, connect_delay: float = 2.0, disconnect_delay: float = 1.0):
        self.connect_delay = connect_delay
        self.disconnect_delay = disconnect_delay

    async def connect(self, target: PlatformTarget) -> None:
        await asyncio.sleep(self.connect_delay)

    async def disconnect(self, target: PlatformTarget) -> None:
        await asyncio.sleep(self.disconnect_delay)


class PlatformStore(Protocol):
    def get_platform(self, platform_id: str) -> Optional[PlatformTarget]: ...

    def set_platform_status(self, platform_id: str, status: PlatformStatus) -> None: ...


class PlatformConnector:
    """Drives ``disconnected -> connecting -> connected|error`` and back.

    The status is read and written through ``store`` so every change lands in
    the session snapshot. A failed round trip always ends on ``ERROR``; a
    platform in ``ERROR`` has to be disconnected before it can connect again.
    """

    def __init__(self, store: PlatformStore, integration: PlatformIntegration):
        self.store = store
        self.integration = integration

    def _require(self, platform_id: str, allowed: Set[PlatformStatus], action: str) -> PlatformTarget:
        target = self.store.get_platform(platform_id)
        if target is None:
            raise ConnectorError(platform_id, f"Unknown platform {platform_id}")
        if target.status not in allowed:
            raise ConnectorError(platform_id, f"Cannot {action} {platform_id} while {target.status.value}")
        return target

    async def connect(self, platform_id: str) -> None:
        target = self._require(platform_id, CONNECT_FROM, "connect")
        self.store.set_platform_status(platform_id, PlatformStatus.CONNECTING)
        try:
            await self.integration.connect(target)
        except Exception as exc:
            logger.error("Failed to connect to %s: %s", platform_id, exc)
            self.store.set_platform_status(platform_id, PlatformStatus.ERROR)
            raise ConnectorError(platform_id, f"Failed to connect to {platform_id}: {exc}") from exc
        self.store.set_platform_status(platform_id, PlatformStatus.CONNECTED)
        logger.info("Connected to %s", platform_id)

    async def disconnect(self, platform_id: str) -> None:
        target = self._require(platform_id, DISCONNECT_FROM, "disconnect")
        try:
            await self.integration.disconnect(target)
        except Exception as exc:
            logger.error("Failed to disconnect from %s: %s", platform_id, exc)
            self.store.set_platform_status(platform_id, PlatformStatus.ERROR)
            raise ConnectorError(platform_id, f"Failed to disconnect from {platform_id}: {exc}") from exc
        self.store.set_platform_status(platform_id, PlatformStatus.DISCONNECTED)
        logger.info("Disconnected from %s", platform_id)
