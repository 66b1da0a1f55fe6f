"""Live-reload capability: a tiny-lr compatible server run by uvicorn.

The server lives on its own thread with its own event loop.  The dev-loop
supervisor calls :meth:`LiveReloadServer.notify` from the control thread;
the broadcast is handed to the server loop with
:func:`asyncio.run_coroutine_threadsafe`.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterable
from concurrent.futures import Future
from typing import Protocol, runtime_checkable

import uvicorn
from fastapi import FastAPI

from begin import __version__
from begin.api.hub import ReloadHub
from begin.api.middleware.error_handler import ErrorHandlerMiddleware
from begin.api.middleware.logging_middleware import LoggingMiddleware
from begin.api.routes import router
from begin.utils.logging import get_logger

logger = get_logger("livereload.server")


@runtime_checkable
class LiveReload(Protocol):
    def listen(self, port: int) -> None: ...

    def notify(self, files: Iterable[str]) -> object: ...

    def close(self) -> None: ...


def create_app(hub: ReloadHub | None = None) -> FastAPI:
    app = FastAPI(
        title="begin live-reload",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.hub = hub or ReloadHub()

    # Middleware is applied in reverse order -- outermost first.
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.include_router(router)
    return app


class LiveReloadServer:
    """Serve :func:`create_app` on a background thread.

    Parameters
    ----------
    host:
        Interface to bind.
    """

    def __init__(self, host: str = "127.0.0.1") -> None:
        self.host = host
        self.hub = ReloadHub()
        self.app = create_app(self.hub)
        self.port: int | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    def listen(self, port: int) -> None:
        if self._server is not None:
            return
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=port,
            log_level="warning",
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run, name="livereload", daemon=True
        )
        self._thread.start()
        self.port = port
        logger.info("livereload_listening", host=self.host, port=port)

    def notify(self, files: Iterable[str]) -> Future | None:
        """Schedule a reload broadcast for *files* on the server loop.

        Returns ``None`` when no viewer has connected yet.
        """
        files = list(files)
        loop = self.hub.loop
        if loop is None or loop.is_closed() or self.hub.closed:
            logger.debug("livereload_no_clients", files=files)
            return None
        future = asyncio.run_coroutine_threadsafe(self.hub.broadcast(files), loop)
        future.add_done_callback(_log_failure)
        return future

    def close(self) -> None:
        self.hub.close()
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        logger.info("livereload_closed", port=self.port)


def _log_failure(future: Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.warning("livereload_notify_failed", error=str(future.exception()))
