"""Exceptions raised while decoding frames off the wire.

A ``ProtocolError`` means the byte stream can no longer be trusted to be
aligned on a frame boundary. A ``ShortReadError`` means the peer closed the
stream in the middle of a frame. Either way the connection is finished.
"""

from __future__ import annotations


class ProtocolError(ValueError):
    """The server sent bytes that do not form a valid response frame."""


class BadMagicError(ProtocolError):
    """The first header byte was not the response magic."""

    def __init__(self, magic: int) -> None:
        super().__init__(f"Bad magic: 0x{magic:02x}")
        self.magic = magic


class MalformedFrameError(ProtocolError):
    """Header section lengths disagree with the declared total body length."""


class UnknownOpcodeError(ProtocolError):
    """The response carried an opcode outside the known set."""

    def __init__(self, opcode: int) -> None:
        super().__init__(f"Unknown opcode: 0x{opcode:02x}")
        self.opcode = opcode


class UnknownStatusError(ProtocolError):
    """The response carried a status code outside the known set."""

    def __init__(self, status: int) -> None:
        super().__init__(f"Unknown status: 0x{status:04x}")
        self.status = status


class ShortReadError(ConnectionError):
    """The stream ended before a full frame section could be read."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Stream closed after {received} of {expected} bytes"
        )
        self.expected = expected
        self.received = received
