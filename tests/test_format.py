import struct
from collections import Counter

import pytest
from bitarray import bitarray, frozenbitarray
from bitarray.util import vl_encode

from huffman_core import HuffmanLogic
from huffman_format import MAGIC, CompressedPayload, PayloadFormatError, dump_payload, load_payload


def _payload(lines, token_type="chars"):
	logic = HuffmanLogic()
	table = logic.generate_codes(logic.build_tree(Counter("".join(lines))))
	return CompressedPayload(table.decoder, logic.encode_segments(lines, table), token_type)


def test_dump_then_load_preserves_everything():
	payload = _payload(["héllo wörld\n", "naïve €uro\n", "x"])
	loaded = load_payload(dump_payload(payload))
	assert loaded.token_type == "chars"
	assert loaded.decoder == payload.decoder
	assert loaded.segments == payload.segments
	# bit lengths are exact, not rounded up to whole bytes
	assert [len(s) for s in loaded.segments] == [len(s) for s in payload.segments]


def test_word_token_type_is_recorded():
	logic = HuffmanLogic()
	tokens = ["the ", "cat ", "the ", "hat"]
	table = logic.generate_codes(logic.build_tree(Counter(tokens)))
	payload = CompressedPayload(table.decoder, [logic.encode(tokens, table)], "words")
	assert load_payload(dump_payload(payload)).token_type == "words"


def test_header_layout():
	blob = dump_payload(_payload(["ab"]))
	assert blob[:4] == MAGIC
	assert blob[4] == 1
	assert blob[5] == 0
	assert struct.unpack("<I", blob[6:10])[0] == 2


def test_empty_segment_survives():
	payload = _payload(["aab", ""])
	loaded = load_payload(dump_payload(payload))
	assert loaded.segments[1] == bitarray()


def test_bad_magic():
	blob = bytearray(dump_payload(_payload(["hello"])))
	blob[0] ^= 0xFF
	with pytest.raises(PayloadFormatError):
		load_payload(bytes(blob))


def test_unsupported_version():
	blob = bytearray(dump_payload(_payload(["hello"])))
	blob[4] = 9
	with pytest.raises(PayloadFormatError, match="version"):
		load_payload(bytes(blob))


def test_unknown_token_type_id():
	blob = bytearray(dump_payload(_payload(["hello"])))
	blob[5] = 7
	with pytest.raises(PayloadFormatError):
		load_payload(bytes(blob))


@pytest.mark.parametrize("cut", [1, 3, 8, 20])
def test_truncated_payload(cut):
	blob = dump_payload(_payload(["hello world\n", "goodbye\n"]))
	with pytest.raises(PayloadFormatError):
		load_payload(blob[:-cut])


def test_trailing_bytes_rejected():
	blob = dump_payload(_payload(["hello"]))
	with pytest.raises(PayloadFormatError, match="trailing"):
		load_payload(blob + b"\x00")


def test_unknown_token_type_on_dump():
	with pytest.raises(PayloadFormatError):
		dump_payload(_payload(["abc"], token_type="bytes"))


def test_non_string_tokens_cannot_be_stored():
	logic = HuffmanLogic()
	table = logic.generate_codes(logic.build_tree({1: 2, 3: 4}))
	with pytest.raises(TypeError):
		dump_payload(CompressedPayload(table.decoder, []))


def test_payload_bit_length():
	payload = _payload(["aab", "ba"])
	assert payload.bit_length() == sum(len(s) for s in payload.segments)


def _raw_payload(entries, segments=b"\x00\x00\x00\x00"):
	header = struct.pack("<4sBB", MAGIC, 1, 0) + struct.pack("<I", len(entries))
	return header + b"".join(entries) + segments


def _entry(code, token_bytes):
	return bytes(vl_encode(bitarray(code))) + struct.pack("<I", len(token_bytes)) + token_bytes


def test_truncated_code_entry():
	# a continuation byte with nothing after it
	with pytest.raises(PayloadFormatError, match="code entry"):
		load_payload(_raw_payload([b"\x80"], segments=b""))


def test_token_must_be_utf8():
	with pytest.raises(PayloadFormatError, match="UTF-8"):
		load_payload(_raw_payload([_entry('0', b"\xff\xfe")]))


def test_hand_built_table_loads():
	payload = load_payload(_raw_payload([_entry('0', b"a"), _entry('1', b"b")]))
	assert payload.table.encoder['b'] == bitarray('1')


def test_code_prefix_of_another_code_rejected():
	payload = CompressedPayload(
		{frozenbitarray('0'): 'a', frozenbitarray('01'): 'b'}, [bitarray('00')]
	)
	with pytest.raises(PayloadFormatError, match="invalid code table"):
		load_payload(dump_payload(payload))


def test_repeated_token_rejected():
	payload = CompressedPayload({frozenbitarray('0'): 'a', frozenbitarray('1'): 'a'}, [])
	with pytest.raises(PayloadFormatError, match="invalid code table"):
		load_payload(dump_payload(payload))


def test_loaded_payload_carries_table():
	payload = _payload(["hello world\n"])
	loaded = load_payload(dump_payload(payload))
	assert loaded.table.decoder == payload.decoder
	assert loaded.table.tree is not None
