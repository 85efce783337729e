"""Request builders for the operations the client exposes.

Each builder returns a fresh, immutable ``Request``; nothing here touches
the network.
"""

from __future__ import annotations

import struct

from .constants import STORE_EXTRAS_FMT, Opcode
from .framing import Request

# Opaque token sent with STAT requests; the server echoes it on every reply.
STATS_OPAQUE = 918494

STORE_OPCODES = (Opcode.SET, Opcode.ADD)


def to_bytes(value: str | bytes) -> bytes:
    """UTF-8 encode text; pass bytes through untouched."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def pack_store_extras(flags: int, expiration: int) -> bytes:
    """Pack the 8-byte store extras: flags in the high word, expiry low.

    Args:
        flags: Opaque 32-bit client flags stored alongside the value.
        expiration: Expiry in seconds (or absolute unix time), 32-bit.
    """
    if not 0 <= flags <= 0xFFFFFFFF:
        raise ValueError(f"Flags must fit in 32 bits, got {flags}")
    if not 0 <= expiration <= 0xFFFFFFFF:
        raise ValueError(f"Expiration must fit in 32 bits, got {expiration}")
    return struct.pack(STORE_EXTRAS_FMT, flags, expiration)


def build_get(vbucket: int, key: str | bytes) -> Request:
    """Build a GET request for a single key."""
    return Request(opcode=Opcode.GET, vbucket=vbucket, key=to_bytes(key))


def build_delete(vbucket: int, key: str | bytes) -> Request:
    """Build a DELETE request for a single key."""
    return Request(opcode=Opcode.DELETE, vbucket=vbucket, key=to_bytes(key))


def build_store(
    opcode: Opcode,
    vbucket: int,
    key: str | bytes,
    flags: int,
    expiration: int,
    body: str | bytes,
) -> Request:
    """Build a SET or ADD request.

    Args:
        opcode: ``Opcode.SET`` or ``Opcode.ADD``.
        vbucket: VBucket id the key belongs to.
        key: Item key.
        flags: 32-bit client flags.
        expiration: 32-bit expiry.
        body: Item value.
    """
    if opcode not in STORE_OPCODES:
        raise ValueError(f"Not a store opcode: {opcode!r}")
    return Request(
        opcode=opcode,
        vbucket=vbucket,
        key=to_bytes(key),
        extras=pack_store_extras(flags, expiration),
        body=to_bytes(body),
    )


def build_stat(group: str | bytes = b"") -> Request:
    """Build a STAT request; an empty group asks for the top-level stats."""
    return Request(opcode=Opcode.STAT, key=to_bytes(group), opaque=STATS_OPAQUE)
