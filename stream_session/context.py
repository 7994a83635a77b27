"""Application-wide container tying the session components together."""

from __future__ import annotations

import logging
from typing import Optional

from .api_client import StreamingApiClient, TokenProvider
from .config import ControllerConfig, load_config
from .platforms import PlatformIntegration
from .reconciler import ReconciliationLoop
from .session_manager import SessionOrchestrator

logger = logging.getLogger(__name__)


class StreamSessionContext:
    """One broadcast session controller per application.

    Construct it at startup, ``await start()`` inside the running event loop
    and call ``dispose()`` on shutdown.
    """

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        api: Optional[StreamingApiClient] = None,
        token_provider: Optional[TokenProvider] = None,
        integration: Optional[PlatformIntegration] = None,
    ):
        self.config = config or load_config()
        self.api = api or StreamingApiClient(self.config.api, token_provider)
        self.orchestrator = SessionOrchestrator(self.config, self.api, integration=integration)
        self.reconciler = ReconciliationLoop(self.orchestrator)

    async def start(self) -> None:
        self.reconciler.start()
        logger.info("%s started", self.config.project_name)

    def dispose(self) -> None:
        self.reconciler.dispose()
        self.api.close()
        logger.info("%s stopped", self.config.project_name)
