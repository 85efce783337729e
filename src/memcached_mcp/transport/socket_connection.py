"""Stream socket connection to a memcached server.

A ``Connection`` owns one socket and one 24-byte header scratch buffer.
It writes request frames and reads response frames strictly in order;
there is no queueing and no internal locking.

Usage::

    conn = dial("tcp", "localhost:11211")
    response = conn.send(request)
    conn.close()

Only one request may be outstanding at a time. A caller that uses
``transmit`` and ``receive`` separately must not write another request
before the matching ``receive``.
"""

from __future__ import annotations

import logging
import re
import socket

from ..protocol.constants import HEADER_SIZE
from ..protocol.errors import ProtocolError
from ..protocol.framing import Request, Response, encode_request, read_response

logger = logging.getLogger(__name__)

DEFAULT_PORT = 11211
DEFAULT_ADDRESS = f"localhost:{DEFAULT_PORT}"

NETWORK_FAMILIES = {
    "tcp": socket.AF_UNSPEC,
    "tcp4": socket.AF_INET,
    "tcp6": socket.AF_INET6,
}


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host[:port]`` or ``[v6host][:port]`` into (host, port)."""
    if address.startswith("["):
        matches = re.match(r"^\[([^\]]+)\](:(\d+))?$", address)
    else:
        matches = re.match(r"^([^:]+)(:(\d+))?$", address)
    if not matches:
        raise ValueError(f"Invalid address: {address!r}")
    host = matches.group(1)
    port = int(matches.group(3)) if matches.group(3) else DEFAULT_PORT
    return host, port


def _connect_tcp(
    host: str, port: int, family: int, timeout: float | None
) -> socket.socket:
    last_error: OSError | None = None
    for af, socktype, proto, _, sockaddr in socket.getaddrinfo(
        host, port, family, socket.SOCK_STREAM
    ):
        sock = socket.socket(af, socktype, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
        except OSError as e:
            last_error = e
            sock.close()
            continue
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return sock
    raise last_error or OSError(f"No addresses found for {host}:{port}")


def dial(
    network: str = "tcp",
    address: str = DEFAULT_ADDRESS,
    timeout: float | None = None,
) -> Connection:
    """Open a connection to a memcached server.

    Args:
        network: ``tcp``, ``tcp4``, ``tcp6`` or ``unix``.
        address: ``host:port`` for TCP networks, a socket path for ``unix``.
        timeout: Per-operation socket timeout in seconds; ``None`` blocks
            indefinitely.

    Raises:
        ValueError: If the network name or address is not understood.
        ConnectionError: If the server cannot be reached.
    """
    if network != "unix" and network not in NETWORK_FAMILIES:
        raise ValueError(
            f"Unknown network '{network}'. Valid: {['unix', *NETWORK_FAMILIES]}"
        )

    try:
        if network == "unix":
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.settimeout(timeout)
                sock.connect(address)
            except OSError:
                sock.close()
                raise
        else:
            host, port = parse_address(address)
            sock = _connect_tcp(host, port, NETWORK_FAMILIES[network], timeout)
    except OSError as e:
        raise ConnectionError(
            f"Could not connect to memcached at {address} ({network}). "
            f"Last error: {e}"
        ) from e

    logger.info("Connected to %s (%s)", address, network)
    return Connection(sock, address=address)


class Connection:
    """One open stream to a memcached server.

    Any transport or protocol failure leaves the stream at an unknown
    position, so the connection closes itself and every later operation
    raises ``ConnectionError``.
    """

    def __init__(self, sock: socket.socket, address: str = "") -> None:
        self._sock = sock
        self._address = address
        self._header = bytearray(HEADER_SIZE)
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def address(self) -> str:
        return self._address

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the socket. Safe to call more than once.

        The socket is shut down first so that a read blocked in another
        thread returns end-of-file and fails instead of hanging.
        """
        if not self._connected:
            return

        self._connected = False
        sock, self._sock = self._sock, None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug("Shutdown failed: %s", e)
        try:
            sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            logger.info("Disconnected from %s", self._address or "server")

    def _require_socket(self) -> socket.socket:
        sock = self._sock
        if not self._connected or sock is None:
            raise ConnectionError("Not connected to server")
        return sock

    def transmit(self, request: Request) -> None:
        """Write a request frame without waiting for the reply.

        Raises:
            ConnectionError: If the connection is closed.
            OSError: If the write fails; the connection is closed.
        """
        sock = self._require_socket()
        data = encode_request(request)
        try:
            sock.sendall(data)
        except OSError:
            self.close()
            raise
        logger.debug("Sent %r (%d bytes)", request, len(data))

    def receive(self) -> Response:
        """Block for the next response frame.

        Raises:
            ConnectionError: If the connection is closed, or closes mid-frame.
            ProtocolError: If the frame is invalid; the connection is closed.
            OSError: If the read fails; the connection is closed.
        """
        sock = self._require_socket()
        try:
            response = read_response(sock, self._header)
        except (OSError, ProtocolError):
            self.close()
            raise
        logger.debug("Received %r", response)
        return response

    def send(self, request: Request) -> Response:
        """Write a request and block for its response."""
        self.transmit(request)
        return self.receive()
