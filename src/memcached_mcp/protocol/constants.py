"""Wire constants for the memcached binary protocol.

Header layout (24 bytes, big-endian)::

    +-------+--------+---------+--------+----------+-----------------+
    | Magic | Opcode | Key len | Extras | DataType | VBucket/Status  |
    | 1 B   | 1 B    | 2 B     | 1 B    | 1 B      | 2 B             |
    +-------+--------+---------+--------+----------+-----------------+
    |     Total body length (4 B)   |        Opaque (4 B)            |
    +-------------------------------+--------------------------------+
    |                           CAS (8 B)                            |
    +----------------------------------------------------------------+

Bytes 6-7 carry the vbucket id in a request and the status in a response.
"""

from __future__ import annotations

import struct
from enum import IntEnum

REQUEST_MAGIC = 0x80
RESPONSE_MAGIC = 0x81

# magic, opcode, keylen, extralen, datatype, vbucket, bodylen, opaque, cas
REQUEST_HEADER_FMT = ">BBHBBHIIQ"
# magic, opcode, keylen, extralen, datatype, status, bodylen, opaque, cas
RESPONSE_HEADER_FMT = ">BBHBBHIIQ"
HEADER_SIZE = struct.calcsize(REQUEST_HEADER_FMT)

MAX_KEY_LENGTH = 0xFFFF
MAX_EXTRAS_LENGTH = 0xFF
MAX_BODY_LENGTH = 0xFFFFFFFF

# flags, expiration
STORE_EXTRAS_FMT = ">II"
# flags
GET_EXTRAS_FMT = ">I"


class Opcode(IntEnum):
    """Command opcodes shared by requests and their responses."""

    GET = 0x00
    SET = 0x01
    ADD = 0x02
    REPLACE = 0x03
    DELETE = 0x04
    INCREMENT = 0x05
    DECREMENT = 0x06
    QUIT = 0x07
    FLUSH = 0x08
    GETQ = 0x09
    NOOP = 0x0A
    VERSION = 0x0B
    GETK = 0x0C
    GETKQ = 0x0D
    APPEND = 0x0E
    PREPEND = 0x0F
    STAT = 0x10
    SETQ = 0x11
    ADDQ = 0x12
    REPLACEQ = 0x13
    DELETEQ = 0x14
    INCREMENTQ = 0x15
    DECREMENTQ = 0x16
    QUITQ = 0x17
    FLUSHQ = 0x18
    APPENDQ = 0x19
    PREPENDQ = 0x1A
    VERBOSITY = 0x1B
    TOUCH = 0x1C
    GAT = 0x1D
    GATQ = 0x1E
    SASL_LIST_MECHS = 0x20
    SASL_AUTH = 0x21
    SASL_STEP = 0x22
    GATK = 0x23
    GATKQ = 0x24
    RGET = 0x30
    RSET = 0x31
    RSETQ = 0x32
    RAPPEND = 0x33
    RAPPENDQ = 0x34
    RPREPEND = 0x35
    RPREPENDQ = 0x36
    RDELETE = 0x37
    RDELETEQ = 0x38
    RINCR = 0x39
    RINCRQ = 0x3A
    RDECR = 0x3B
    RDECRQ = 0x3C
    SET_VBUCKET = 0x3D
    GET_VBUCKET = 0x3E
    DEL_VBUCKET = 0x3F


class Status(IntEnum):
    """Response status codes."""

    SUCCESS = 0x00
    KEY_ENOENT = 0x01
    KEY_EEXISTS = 0x02
    E2BIG = 0x03
    EINVAL = 0x04
    NOT_STORED = 0x05
    DELTA_BADVAL = 0x06
    NOT_MY_VBUCKET = 0x07
    AUTH_ERROR = 0x20
    AUTH_CONTINUE = 0x21
    ERANGE = 0x22
    UNKNOWN_COMMAND = 0x81
    ENOMEM = 0x82
    NOT_SUPPORTED = 0x83
    EINTERNAL = 0x84
    EBUSY = 0x85
    ETMPFAIL = 0x86
