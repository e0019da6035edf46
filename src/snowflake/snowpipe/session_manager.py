from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import AsyncGenerator

import aiohttp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AioHttpConfig:
    """Immutable HTTP configuration shared by sessions of one SessionManager."""

    use_pooling: bool = True
    trust_env: bool = True


class SessionManager:
    """Owns the aiohttp.ClientSession instances used to reach Snowpipe.

    With pooling enabled one session, and its connection pool, is reused for
    every request until `close` is called. Without pooling each request gets a
    fresh session which is closed as soon as the request is done.
    """

    def __init__(
        self, config: AioHttpConfig | None = None, **http_config_kwargs
    ) -> None:
        if config is None:
            logger.debug("Creating a config for the SessionManager")
            config = AioHttpConfig(**http_config_kwargs)
        self._cfg = config
        self._session: aiohttp.ClientSession | None = None

    @property
    def use_pooling(self) -> bool:
        return self._cfg.use_pooling

    def make_session(self) -> aiohttp.ClientSession:
        """Create a new aiohttp.ClientSession; TLS verification stays on."""
        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=True),
            trust_env=self._cfg.trust_env,
        )

    @contextlib.asynccontextmanager
    async def use_session(self) -> AsyncGenerator[aiohttp.ClientSession, None]:
        if not self.use_pooling:
            session = self.make_session()
            try:
                yield session
            finally:
                await session.close()
        else:
            if self._session is None or self._session.closed:
                logger.debug("Creating a pooled session")
                self._session = self.make_session()
            yield self._session

    async def close(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
