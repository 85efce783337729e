"""Protocol layer: wire constants, frame codec, request builders, and stat parsing."""

from .constants import Opcode, Status
from .errors import ProtocolError, BadMagicError, MalformedFrameError, ShortReadError
from .framing import Request, Response, encode_request, read_response
