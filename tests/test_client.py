"""End-to-end tests for the operation facade against an in-process fake server."""

from __future__ import annotations

import socket
import struct
import threading

import pytest

from memcached_mcp.client import Client
from memcached_mcp.models.stats import StatEntry
from memcached_mcp.protocol.commands import STATS_OPAQUE
from memcached_mcp.protocol.constants import (
    HEADER_SIZE,
    REQUEST_HEADER_FMT,
    REQUEST_MAGIC,
    RESPONSE_HEADER_FMT,
    RESPONSE_MAGIC,
    STORE_EXTRAS_FMT,
    Opcode,
    Status,
)
from memcached_mcp.protocol.errors import ProtocolError
from memcached_mcp.protocol.framing import Request

SERVER_STATS = [("pid", "4242"), ("uptime", "17"), ("version", "1.6.21")]


class FakeMemcached:
    """Minimal single-connection binary-protocol server backed by a dict."""

    def __init__(self) -> None:
        self.items: dict[bytes, tuple[int, bytes]] = {}
        self.requests: list[tuple[int, int, bytes, bytes, bytes, int]] = []
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.address = "127.0.0.1:%d" % self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._listener.close()
        self._thread.join(timeout=5)

    def _serve(self) -> None:
        try:
            sock, _ = self._listener.accept()
        except OSError:
            return
        with sock:
            while True:
                header = self._recv(sock, HEADER_SIZE)
                if header is None:
                    return
                (magic, opcode, keylen, extlen, _, vbucket, total, opaque,
                 _cas) = struct.unpack(REQUEST_HEADER_FMT, header)
                assert magic == REQUEST_MAGIC
                payload = self._recv(sock, total) if total else b""
                extras = payload[:extlen]
                key = payload[extlen:extlen + keylen]
                body = payload[extlen + keylen:]
                self.requests.append((opcode, vbucket, key, extras, body, opaque))
                sock.sendall(self._handle(opcode, key, extras, body, opaque))

    @staticmethod
    def _recv(sock, n):
        data = b""
        while len(data) < n:
            chunk = sock.recv(n - len(data))
            if not chunk:
                return None
            data += chunk
        return data

    @staticmethod
    def _frame(opcode, status=Status.SUCCESS, key=b"", extras=b"", body=b"",
               opaque=0, cas=0):
        header = struct.pack(
            RESPONSE_HEADER_FMT, RESPONSE_MAGIC, opcode, len(key), len(extras),
            0, status, len(extras) + len(key) + len(body), opaque, cas,
        )
        return header + extras + key + body

    def _handle(self, opcode, key, extras, body, opaque) -> bytes:
        if opcode == Opcode.GET:
            if key not in self.items:
                return self._frame(opcode, Status.KEY_ENOENT, body=b"Not found")
            flags, value = self.items[key]
            return self._frame(
                opcode, extras=struct.pack(">I", flags), body=value, cas=1
            )
        if opcode in (Opcode.SET, Opcode.ADD):
            if opcode == Opcode.ADD and key in self.items:
                return self._frame(opcode, Status.KEY_EEXISTS, body=b"Data exists for key.")
            flags, _exp = struct.unpack(STORE_EXTRAS_FMT, extras)
            self.items[key] = (flags, body)
            return self._frame(opcode, cas=1)
        if opcode == Opcode.DELETE:
            if self.items.pop(key, None) is None:
                return self._frame(opcode, Status.KEY_ENOENT, body=b"Not found")
            return self._frame(opcode)
        if opcode == Opcode.STAT:
            stats = SERVER_STATS if not key else [(key.decode() + ":count", "3")]
            frames = [
                self._frame(opcode, key=k.encode(), body=v.encode(), opaque=opaque)
                for k, v in stats
            ]
            if key == b"interleaved":
                frames.insert(1, self._frame(Opcode.GET, key=b"x", body=b"1"))
            frames.append(self._frame(opcode, opaque=opaque))
            return b"".join(frames)
        return self._frame(opcode, Status.UNKNOWN_COMMAND, body=b"Unknown command")


@pytest.fixture
def server():
    srv = FakeMemcached()
    yield srv
    srv.close()


@pytest.fixture
def client(server):
    c = Client.connect(server.address, timeout=5)
    yield c
    c.close()


def test_get_missing_key_is_not_an_error(client):
    res = client.get(0, "foo")
    assert res.status == Status.KEY_ENOENT
    assert not res.success
    assert res.opcode == Opcode.GET


def test_set_then_get(client):
    res = client.set(0, "foo", 0, 0, "bar")
    assert res.success
    res = client.get(0, "foo")
    assert res.success
    assert res.body == b"bar"
    assert res.flags == 0


def test_set_sends_flags_and_expiration(client, server):
    client.set(2, b"foo", 0x01020304, 600, b"bar")
    opcode, vbucket, key, extras, body, opaque = server.requests[-1]
    assert opcode == Opcode.SET
    assert vbucket == 2
    assert key == b"foo"
    assert extras == bytes.fromhex("0102030400000258")
    assert body == b"bar"
    assert opaque == 0
    assert client.get(2, "foo").flags == 0x01020304


def test_add_existing_key(client):
    assert client.add(0, "foo", 0, 0, "one").success
    res = client.add(0, "foo", 0, 0, "two")
    assert res.status == Status.KEY_EEXISTS
    assert client.get(0, "foo").body == b"one"


def test_delete(client):
    client.set(0, "foo", 0, 0, "bar")
    assert client.delete(0, "foo").success
    assert client.get(0, "foo").status == Status.KEY_ENOENT
    assert client.delete(0, "foo").status == Status.KEY_ENOENT


def test_get_and_delete_send_bare_requests(client, server):
    client.get(5, "k")
    client.delete(5, "k")
    for opcode, (op, vbucket, key, extras, body, opaque) in zip(
        (Opcode.GET, Opcode.DELETE), server.requests
    ):
        assert op == opcode
        assert vbucket == 5
        assert key == b"k"
        assert extras == b"" and body == b"" and opaque == 0


def test_stats_in_server_order(client, server):
    entries = client.stats()
    assert entries == [StatEntry(k, v) for k, v in SERVER_STATS]
    opcode, _, key, _, _, opaque = server.requests[-1]
    assert opcode == Opcode.STAT
    assert key == b""
    assert opaque == STATS_OPAQUE


def test_stats_group(client):
    assert client.stats("items") == [StatEntry("items:count", "3")]


def test_stats_foreign_frame_closes_connection(client):
    """A non-STAT frame inside a stats reply leaves the stream unusable."""
    with pytest.raises(ProtocolError):
        client.stats("interleaved")
    assert not client.connected
    with pytest.raises(ConnectionError):
        client.get(0, "foo")


def test_stats_map(client):
    assert client.stats_map() == dict(SERVER_STATS)


def test_connection_usable_after_stats(client):
    client.stats()
    client.set(0, "after", 0, 0, "stats")
    assert client.get(0, "after").body == b"stats"


def test_custom_request(client):
    res = client.send(Request(opcode=Opcode.NOOP))
    assert res.status == Status.UNKNOWN_COMMAND
    assert res.body == b"Unknown command"


def test_transmit_receive(client):
    client.transmit(Request(opcode=Opcode.GET, key=b"nothing"))
    assert client.receive().status == Status.KEY_ENOENT


def test_context_manager(server):
    with Client.connect(server.address) as c:
        assert c.connected
    assert not c.connected
