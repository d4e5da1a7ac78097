# filename: huffman_format.py

import struct
from itertools import islice

from bitarray import frozenbitarray
from bitarray.util import deserialize, serialize, vl_decode, vl_encode

from huffman_core import CodeTable, HuffmanError

MAGIC = b"HUFZ"
VERSION = 1

# Header: magic(4) version(1) token_type(1)
HEADER_FMT = "<4sBB"
COUNT_FMT = "<I"

TOKEN_TYPES = ("chars", "words")


class PayloadFormatError(HuffmanError, ValueError):
    pass


class CompressedPayload:
    """Decode map plus one bit sequence per encoded segment."""

    def __init__(self, decoder, segments, token_type="chars", table=None):
        self.decoder = decoder
        self.segments = segments
        self.token_type = token_type
        self._table = table

    @property
    def table(self):
        if self._table is None:
            self._table = CodeTable.from_decoder(self.decoder)
        return self._table

    def bit_length(self):
        return sum(len(segment) for segment in self.segments)


def _pack_count(n):
    return struct.pack(COUNT_FMT, n)


def dump_payload(payload):
    if payload.token_type not in TOKEN_TYPES:
        raise PayloadFormatError(f"unknown token type {payload.token_type!r}")

    buf = bytearray(struct.pack(HEADER_FMT, MAGIC, VERSION, TOKEN_TYPES.index(payload.token_type)))

    buf += _pack_count(len(payload.decoder))
    for code, token in payload.decoder.items():
        if not isinstance(token, str):
            raise TypeError(f"only str tokens can be stored, got {type(token).__name__}")
        raw = token.encode("utf-8")
        buf += vl_encode(code)
        buf += _pack_count(len(raw))
        buf += raw

    buf += _pack_count(len(payload.segments))
    for segment in payload.segments:
        # serialize() records the pad bits, so the bit length survives.
        raw = serialize(segment)
        buf += _pack_count(len(raw))
        buf += raw

    return bytes(buf)


def _take(stream, n, what):
    data = bytes(islice(stream, n))
    if len(data) != n:
        raise PayloadFormatError(f"Malformed payload: truncated {what}")
    return data


def _read_count(stream, what):
    return struct.unpack(COUNT_FMT, _take(stream, struct.calcsize(COUNT_FMT), what))[0]


def load_payload(blob):
    stream = iter(blob)

    magic, ver, kind = struct.unpack(HEADER_FMT, _take(stream, struct.calcsize(HEADER_FMT), "header"))
    if magic != MAGIC:
        raise PayloadFormatError("Bad magic number (not a Huffman payload)")
    if ver != VERSION:
        raise PayloadFormatError(f"Unsupported version: {ver}")
    if kind >= len(TOKEN_TYPES):
        raise PayloadFormatError(f"Unknown token type id: {kind}")

    decoder = {}
    for _ in range(_read_count(stream, "table size")):
        try:
            code = frozenbitarray(vl_decode(stream))
        except (StopIteration, ValueError) as e:
            raise PayloadFormatError(f"Malformed payload: bad code entry ({e})") from e
        raw = _take(stream, _read_count(stream, "token length"), "token")
        try:
            token = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadFormatError(f"Malformed payload: token is not UTF-8 ({e})") from e
        if code in decoder:
            raise PayloadFormatError(f"Malformed payload: duplicate code {code.to01()}")
        decoder[code] = token

    segments = []
    for _ in range(_read_count(stream, "segment count")):
        raw = _take(stream, _read_count(stream, "segment length"), "segment")
        try:
            segments.append(deserialize(raw))
        except ValueError as e:
            raise PayloadFormatError(f"Malformed payload: bad segment ({e})") from e

    if next(stream, None) is not None:
        raise PayloadFormatError("Malformed payload: trailing bytes")

    try:
        # Rejects repeated tokens and codes that are a prefix of another code.
        table = CodeTable.from_decoder(decoder)
    except ValueError as e:
        raise PayloadFormatError(f"Malformed payload: invalid code table ({e})") from e

    return CompressedPayload(decoder, segments, TOKEN_TYPES[kind], table=table)
