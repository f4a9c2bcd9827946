from __future__ import annotations

import logging
import socket
from typing import Any, Callable, Optional

from kazoo.client import KazooClient
from kazoo.handlers.threading import KazooTimeoutError

from stack_scaler.services.errors import ConnectivityError


logger = logging.getLogger(__name__)

ZOOKEEPER_PORT = 2181
LIVE_NODES_PATH = "/live_nodes"
UNAVAILABLE_STATE: dict[str, str] = {"zk_state": "unavailable"}


def parse_mntr(text: str) -> dict[str, str]:
    """Parse the tab-separated `key<TAB>value` lines of a `mntr` reply."""

    state: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.rstrip("\r").partition("\t")
        if sep and key:
            state[key] = value
    return state


class ZookeeperService:
    """Coordination-service access: four-letter-word diagnostics plus a kazoo client.

    The kazoo client is created up front and only connected on first use.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = ZOOKEEPER_PORT,
        probe_timeout_seconds: float = 5.0,
        connect_timeout_seconds: float = 15.0,
        client: Optional[Any] = None,
        connect: Callable[..., socket.socket] = socket.create_connection,
    ) -> None:
        self._host = host
        self._port = port
        self._probe_timeout = probe_timeout_seconds
        self._connect_timeout = connect_timeout_seconds
        self._client = client if client is not None else KazooClient(hosts=f"{host}:{port}")
        self._connect = connect
        self._started_once = False

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    def server_state(self) -> dict[str, str]:
        """Return the `mntr` map, or UNAVAILABLE_STATE if the probe times out or fails."""

        try:
            with self._connect((self._host, self._port), timeout=self._probe_timeout) as sock:
                sock.sendall(b"mntr\n")
                chunks: list[bytes] = []
                while True:
                    chunk = sock.recv(4096)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except OSError as exc:
            logger.debug("mntr probe against %s failed: %s", self.address, exc)
            return dict(UNAVAILABLE_STATE)
        return parse_mntr(b"".join(chunks).decode("utf-8", errors="replace"))

    def _started(self) -> Any:
        if not self._client.connected:
            try:
                self._started_once = True
                self._client.start(timeout=self._connect_timeout)
            except KazooTimeoutError as exc:
                raise ConnectivityError(f"Could not connect to zookeeper at {self.address}") from exc
        return self._client

    def live_node_count(self) -> int:
        stat = self._started().exists(LIVE_NODES_PATH)
        return 0 if stat is None else int(stat.numChildren)

    def live_nodes(self) -> list[str]:
        return list(self._started().get_children(LIVE_NODES_PATH))

    def close(self) -> None:
        if not self._started_once:
            return
        self._client.stop()
        self._client.close()
        self._started_once = False
