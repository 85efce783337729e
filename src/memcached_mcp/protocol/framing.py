"""Request encoder and response decoder for memcached binary frames.

Every frame is a 24-byte header followed by three variable sections in a
fixed order::

    +-----------------+--------+-----+------+
    | Header (24 B)   | Extras | Key | Body |
    +-----------------+--------+-----+------+

The header declares the key length, the extras length and the *total*
length of all three sections. The body length is never sent; it is
recovered as ``total - key - extras``.

Decoding reads from any stream that offers ``recv_into`` (sockets) or
``readinto`` (binary file objects) and blocks until each section is filled.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .constants import (
    GET_EXTRAS_FMT,
    HEADER_SIZE,
    MAX_BODY_LENGTH,
    MAX_EXTRAS_LENGTH,
    MAX_KEY_LENGTH,
    REQUEST_HEADER_FMT,
    REQUEST_MAGIC,
    RESPONSE_HEADER_FMT,
    RESPONSE_MAGIC,
    Opcode,
    Status,
)
from .errors import (
    BadMagicError,
    MalformedFrameError,
    ShortReadError,
    UnknownOpcodeError,
    UnknownStatusError,
)


def _preview(data: bytes) -> str:
    return data.hex(" ") if data else "(empty)"


@dataclass(frozen=True)
class Request:
    """A single request frame, built per call and discarded after encoding."""

    opcode: Opcode
    key: bytes = b""
    extras: bytes = b""
    body: bytes = b""
    vbucket: int = 0
    cas: int = 0
    opaque: int = 0

    def __repr__(self) -> str:
        return (
            f"Request(opcode={self.opcode.name}, vbucket={self.vbucket}, "
            f"key={self.key!r}, extras={_preview(self.extras)}, "
            f"body_len={len(self.body)}, opaque=0x{self.opaque:08X})"
        )


@dataclass
class Response:
    """A decoded response frame. ``status`` is data, never raised."""

    opcode: Opcode
    status: Status
    key: bytes = b""
    extras: bytes = b""
    body: bytes = b""
    opaque: int = 0
    cas: int = 0

    @property
    def success(self) -> bool:
        return self.status == Status.SUCCESS

    @property
    def flags(self) -> int | None:
        """Client flags stored with the item, as returned by GET."""
        if len(self.extras) != struct.calcsize(GET_EXTRAS_FMT):
            return None
        return struct.unpack(GET_EXTRAS_FMT, self.extras)[0]

    def __repr__(self) -> str:
        return (
            f"Response(opcode={self.opcode.name}, status={self.status.name}, "
            f"key={self.key!r}, extras={_preview(self.extras)}, "
            f"body_len={len(self.body)}, opaque=0x{self.opaque:08X}, "
            f"cas={self.cas})"
        )


@dataclass(frozen=True)
class ResponseHeader:
    """Fixed fields of a response header plus the derived section sizes."""

    opcode: Opcode
    status: Status
    key_length: int
    extras_length: int
    body_length: int
    opaque: int
    cas: int

    @property
    def total_body_length(self) -> int:
        return self.extras_length + self.key_length + self.body_length


def encode_request(request: Request) -> bytes:
    """Serialize a request into the exact bytes to put on the wire.

    Raises:
        ValueError: If a section is longer than its header field can
            describe, or the vbucket id does not fit in 16 bits.
    """
    key, extras, body = request.key, request.extras, request.body
    if len(key) > MAX_KEY_LENGTH:
        raise ValueError(
            f"Key must be at most {MAX_KEY_LENGTH} bytes, got {len(key)}"
        )
    if len(extras) > MAX_EXTRAS_LENGTH:
        raise ValueError(
            f"Extras must be at most {MAX_EXTRAS_LENGTH} bytes, got {len(extras)}"
        )
    total = len(extras) + len(key) + len(body)
    if total > MAX_BODY_LENGTH:
        raise ValueError(f"Frame body too large: {total} bytes")
    if not 0 <= request.vbucket <= 0xFFFF:
        raise ValueError(f"VBucket id must be 0-65535, got {request.vbucket}")

    header = struct.pack(
        REQUEST_HEADER_FMT,
        REQUEST_MAGIC,
        request.opcode,
        len(key),
        len(extras),
        0,
        request.vbucket,
        total,
        request.opaque,
        request.cas,
    )
    return header + extras + key + body


def decode_header(header: bytes | bytearray | memoryview) -> ResponseHeader:
    """Parse and validate a 24-byte response header.

    Raises:
        BadMagicError: If byte 0 is not the response magic.
        UnknownOpcodeError: If the opcode is not a known command.
        UnknownStatusError: If the status is not a known status code.
        MalformedFrameError: If key and extras overrun the total body length.
    """
    if len(header) != HEADER_SIZE:
        raise ValueError(
            f"Response header must be {HEADER_SIZE} bytes, got {len(header)}"
        )
    (
        magic,
        opcode,
        key_length,
        extras_length,
        _datatype,
        status,
        total,
        opaque,
        cas,
    ) = struct.unpack(RESPONSE_HEADER_FMT, header)

    if magic != RESPONSE_MAGIC:
        raise BadMagicError(magic)
    try:
        opcode = Opcode(opcode)
    except ValueError:
        raise UnknownOpcodeError(opcode) from None
    try:
        status = Status(status)
    except ValueError:
        raise UnknownStatusError(status) from None

    if key_length + extras_length > total:
        raise MalformedFrameError(
            f"Key ({key_length}) and extras ({extras_length}) exceed "
            f"total body length {total}"
        )

    return ResponseHeader(
        opcode=opcode,
        status=status,
        key_length=key_length,
        extras_length=extras_length,
        body_length=total - key_length - extras_length,
        opaque=opaque,
        cas=cas,
    )


def read_exact(stream, buf: bytearray | memoryview) -> None:
    """Fill ``buf`` completely from ``stream``, overwriting its contents.

    Raises:
        ShortReadError: If the stream reaches end-of-file first.
    """
    view = memoryview(buf)
    fill = getattr(stream, "recv_into", None) or stream.readinto
    received = 0
    while received < len(view):
        n = fill(view[received:])
        if not n:
            raise ShortReadError(len(view), received)
        received += n


def read_section(stream, length: int) -> bytes:
    """Read one variable-length section; zero-length sections skip the read."""
    if length == 0:
        return b""
    buf = bytearray(length)
    read_exact(stream, buf)
    return bytes(buf)


def read_response(stream, header_buf: bytearray) -> Response:
    """Read one complete response frame from ``stream``.

    Args:
        stream: Blocking byte stream positioned on a frame boundary.
        header_buf: Caller-owned 24-byte scratch buffer, overwritten here.

    Returns:
        The decoded ``Response``, whatever its status.
    """
    read_exact(stream, header_buf)
    header = decode_header(header_buf)
    extras = read_section(stream, header.extras_length)
    key = read_section(stream, header.key_length)
    body = read_section(stream, header.body_length)
    return Response(
        opcode=header.opcode,
        status=header.status,
        key=key,
        extras=extras,
        body=body,
        opaque=header.opaque,
        cas=header.cas,
    )
