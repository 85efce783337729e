"""Tests for STAT reply parsing and the stats model."""

import pytest

from memcached_mcp.models.stats import StatEntry, stats_to_dict
from memcached_mcp.protocol.constants import Opcode, Status
from memcached_mcp.protocol.errors import ProtocolError
from memcached_mcp.protocol.framing import Response
from memcached_mcp.protocol.parser import is_stat_terminator, parse_stat


def _stat(key: bytes, body: bytes = b"") -> Response:
    return Response(opcode=Opcode.STAT, status=Status.SUCCESS, key=key, body=body)


def test_parse_stat_entry():
    entry = parse_stat(_stat(b"curr_items", b"12"))
    assert entry == StatEntry(key="curr_items", value="12")


def test_terminator_yields_nothing():
    terminator = _stat(b"")
    assert is_stat_terminator(terminator)
    assert parse_stat(terminator) is None


def test_parse_stat_rejects_other_opcodes():
    with pytest.raises(ProtocolError):
        parse_stat(Response(opcode=Opcode.GET, status=Status.SUCCESS, key=b"x"))


def test_stats_to_dict_last_write_wins():
    entries = [
        StatEntry("pid", "1"),
        StatEntry("uptime", "5"),
        StatEntry("pid", "2"),
    ]
    assert stats_to_dict(entries) == {"pid": "2", "uptime": "5"}


def test_stat_entry_to_dict():
    assert StatEntry("pid", "1").to_dict() == {"key": "pid", "value": "1"}
