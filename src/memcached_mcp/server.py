"""MCP server entry point for a memcached binary-protocol client.

Exposes cache operations as tools and server statistics as a resource via
the Model Context Protocol, using the official Python MCP SDK with stdio
transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import Client
from .protocol.framing import Response
from .transport.socket_connection import DEFAULT_ADDRESS

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "memcached",
    instructions="Get, store, delete and inspect items on a memcached server",
)

# Global connection state
_client: Client | None = None


def _get_client() -> Client:
    """Get the active client, raising if not connected."""
    if _client is None or not _client.connected:
        raise RuntimeError(
            "Not connected to a memcached server. Use the 'connect' tool first."
        )
    return _client


def _response_to_dict(response: Response) -> dict[str, Any]:
    result: dict[str, Any] = {
        "opcode": response.opcode.name,
        "status": response.status.name,
        "success": response.success,
        "cas": response.cas,
    }
    if response.key:
        result["key"] = response.key.decode("utf-8", errors="replace")
    if response.body:
        result["value"] = response.body.decode("utf-8", errors="replace")
        result["value_hex"] = response.body.hex()
    if response.flags is not None:
        result["flags"] = response.flags
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    address: str = DEFAULT_ADDRESS,
    network: str = "tcp",
    timeout: float | None = None,
) -> dict[str, Any]:
    """Open a connection to a memcached server.

    Args:
        address: ``host:port`` for TCP, or a socket path for ``unix``.
        network: One of tcp, tcp4, tcp6, unix.
        timeout: Optional socket timeout in seconds.
    """
    global _client
    if _client is not None and _client.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "address": _client.connection.address,
        }

    _client = Client.connect(address, network=network, timeout=timeout)
    return {"connected": True, "address": address, "network": network}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the connection to the memcached server."""
    global _client
    if _client is None:
        return {"disconnected": True}
    _client.close()
    _client = None
    return {"disconnected": True}


# ─── ITEM TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def get_value(key: str, vbucket: int = 0) -> dict[str, Any]:
    """Fetch the value stored under a key.

    A missing key is reported with status KEY_ENOENT, not as an error.

    Args:
        key: Item key.
        vbucket: VBucket id the key maps to (0 for plain memcached).
    """
    return _response_to_dict(_get_client().get(vbucket, key))


@mcp.tool()
def set_value(
    key: str,
    value: str,
    flags: int = 0,
    expiration: int = 0,
    vbucket: int = 0,
) -> dict[str, Any]:
    """Store a value under a key, replacing any existing value.

    Args:
        key: Item key.
        value: Text value, stored UTF-8 encoded.
        flags: 32-bit client flags kept with the item.
        expiration: Expiry in seconds; 0 never expires.
        vbucket: VBucket id the key maps to.
    """
    response = _get_client().set(vbucket, key, flags, expiration, value)
    return _response_to_dict(response)


@mcp.tool()
def add_value(
    key: str,
    value: str,
    flags: int = 0,
    expiration: int = 0,
    vbucket: int = 0,
) -> dict[str, Any]:
    """Store a value only if the key is not already present.

    An existing key is reported with status KEY_EEXISTS.
    """
    response = _get_client().add(vbucket, key, flags, expiration, value)
    return _response_to_dict(response)


@mcp.tool()
def delete_value(key: str, vbucket: int = 0) -> dict[str, Any]:
    """Delete a key from the cache."""
    return _response_to_dict(_get_client().delete(vbucket, key))


# ─── STATS ────────────────────────────────────────────────────────────

@mcp.tool()
def get_stats(group: str = "") -> dict[str, Any]:
    """Read server statistics.

    Args:
        group: Stat group (e.g. "settings", "items", "slabs"); empty for
               the general stats.
    """
    entries = _get_client().stats(group)
    return {
        "group": group,
        "count": len(entries),
        "stats": [entry.to_dict() for entry in entries],
    }


@mcp.resource("memcached://stats")
def stats_resource() -> str:
    """General server statistics as a JSON object."""
    return json.dumps(_get_client().stats_map(), indent=2)


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
