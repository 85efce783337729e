"""Client for the memcached binary protocol, with an MCP server front end."""

from .client import Client
from .transport.socket_connection import Connection, dial

__version__ = "0.1.0"
