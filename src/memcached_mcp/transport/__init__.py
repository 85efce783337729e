"""Transport layer: stream sockets to the cache server."""

from .socket_connection import Connection, dial
