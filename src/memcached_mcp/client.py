"""High-level memcached operations over a single connection.

Usage::

    with Client.connect("localhost:11211") as client:
        client.set(0, "greeting", 0, 0, b"hello")
        response = client.get(0, "greeting")
        if response.success:
            print(response.body)

Non-success statuses (``KEY_ENOENT``, ``KEY_EEXISTS`` and so on) come back
on the ``Response``; only transport and protocol failures raise.
"""

from __future__ import annotations

import logging

from .models.stats import StatEntry, stats_to_dict
from .protocol.constants import Opcode
from .protocol.commands import (
    build_delete,
    build_get,
    build_stat,
    build_store,
)
from .protocol.errors import ProtocolError
from .protocol.framing import Request, Response
from .protocol.parser import parse_stat
from .transport.socket_connection import DEFAULT_ADDRESS, Connection, dial

logger = logging.getLogger(__name__)


class Client:
    """Operation facade over a ``Connection``.

    Not safe for concurrent use; callers sharing a client across threads
    must serialize access themselves.
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    @classmethod
    def connect(
        cls,
        address: str = DEFAULT_ADDRESS,
        network: str = "tcp",
        timeout: float | None = None,
    ) -> Client:
        """Dial a server and wrap the new connection."""
        return cls(dial(network, address, timeout=timeout))

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def connected(self) -> bool:
        return self._connection.connected

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._connection.close()

    # ─── RAW FRAMES ──────────────────────────────────────────────────

    def send(self, request: Request) -> Response:
        """Send a custom request and wait for its response."""
        return self._connection.send(request)

    def transmit(self, request: Request) -> None:
        """Send a request without waiting; pair with :meth:`receive`."""
        self._connection.transmit(request)

    def receive(self) -> Response:
        return self._connection.receive()

    # ─── KEY/VALUE OPERATIONS ────────────────────────────────────────

    def get(self, vbucket: int, key: str | bytes) -> Response:
        """Get the value for a key."""
        return self.send(build_get(vbucket, key))

    def delete(self, vbucket: int, key: str | bytes) -> Response:
        """Delete a key."""
        return self.send(build_delete(vbucket, key))

    def add(
        self,
        vbucket: int,
        key: str | bytes,
        flags: int,
        expiration: int,
        body: str | bytes,
    ) -> Response:
        """Store a value only if the key does not exist yet."""
        return self.send(
            build_store(Opcode.ADD, vbucket, key, flags, expiration, body)
        )

    def set(
        self,
        vbucket: int,
        key: str | bytes,
        flags: int,
        expiration: int,
        body: str | bytes,
    ) -> Response:
        """Store a value unconditionally."""
        return self.send(
            build_store(Opcode.SET, vbucket, key, flags, expiration, body)
        )

    # ─── STATS ───────────────────────────────────────────────────────

    def stats(self, group: str = "") -> list[StatEntry]:
        """Fetch server statistics.

        One STAT request yields a burst of reply frames, one per statistic,
        closed by a frame with an empty key. The number of frames is not
        known up front.

        Args:
            group: Stat group name; ``""`` for the top-level stats.

        Returns:
            Entries in the order the server sent them.
        """
        self.transmit(build_stat(group))
        entries: list[StatEntry] = []
        try:
            while True:
                entry = parse_stat(self.receive())
                if entry is None:
                    break
                entries.append(entry)
        except ProtocolError:
            # The rest of the burst is still unread on the socket.
            self.close()
            raise
        logger.debug("Read %d stats for group %r", len(entries), group)
        return entries

    def stats_map(self, group: str = "") -> dict[str, str]:
        """Fetch server statistics as a ``{key: value}`` mapping."""
        return stats_to_dict(self.stats(group))
