"""Response parsing for multi-frame STAT replies."""

from __future__ import annotations

from ..models.stats import StatEntry
from .constants import Opcode
from .errors import ProtocolError
from .framing import Response


def is_stat_terminator(response: Response) -> bool:
    """The server ends a STAT burst with a frame whose key is empty."""
    return not response.key


def parse_stat(response: Response) -> StatEntry | None:
    """Turn one STAT reply frame into a ``StatEntry``.

    Returns ``None`` for the empty-key terminator frame, which carries no
    statistic.
    """
    if response.opcode != Opcode.STAT:
        raise ProtocolError(
            f"Expected a STAT response, got {response.opcode.name}"
        )
    if is_stat_terminator(response):
        return None
    return StatEntry(
        key=response.key.decode("utf-8", errors="replace"),
        value=response.body.decode("utf-8", errors="replace"),
    )
