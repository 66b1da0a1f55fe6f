"""Connected live-reload viewers and the reload broadcast."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from starlette.websockets import WebSocket

from begin.utils.exceptions import LiveReloadError
from begin.utils.logging import get_logger

logger = get_logger("livereload.hub")

PROTOCOLS = ["http://livereload.com/protocols/official-7"]
SERVER_NAME = "begin"


class ReloadHub:
    """Tracks websocket clients and sends them ``reload`` commands.

    The hub remembers the event loop its clients connected on so that
    notifications coming from another thread can be scheduled onto it.
    """

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self.loop: asyncio.AbstractEventLoop | None = None
        self.closed = False

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.loop = asyncio.get_running_loop()
        self._clients.add(websocket)
        logger.info("livereload_client_connected", clients=len(self._clients))

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info("livereload_client_disconnected", clients=len(self._clients))

    async def handle(self, websocket: WebSocket, message: dict) -> None:
        """Answer a client message; only the ``hello`` handshake needs a reply."""
        command = message.get("command")
        if command == "hello":
            await websocket.send_json(
                {"command": "hello", "protocols": PROTOCOLS, "serverName": SERVER_NAME}
            )
        elif command != "info":
            logger.debug("livereload_unknown_command", command=command)

    async def broadcast(self, files: Iterable[str]) -> int:
        """Send one ``reload`` command per file to every client.

        Returns the number of clients reached.  Clients whose socket fails
        are dropped.
        """
        if self.closed:
            raise LiveReloadError("Live-reload server is shutting down")
        files = list(files)
        reached = 0
        for websocket in list(self._clients):
            try:
                for path in files:
                    await websocket.send_json(
                        {"command": "reload", "path": path, "liveCSS": True, "liveImg": True}
                    )
            except Exception as exc:
                logger.warning("livereload_send_failed", error=str(exc))
                self._clients.discard(websocket)
                continue
            reached += 1
        logger.info("livereload_notified", files=files, clients=reached)
        return reached

    def close(self) -> None:
        self.closed = True
        self._clients.clear()
