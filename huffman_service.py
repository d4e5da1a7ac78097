# // filename: huffman_service.py

import logging

from huffman_core import HuffmanLogic
from huffman_format import CompressedPayload, dump_payload, load_payload
from huffman_tokens import count_tokens, get_tokenizer, split_lines

logger = logging.getLogger(__name__)


def _log_event(event, **details):
    logger.debug("%s: %s", event, ", ".join(f"{k}={v}" for k, v in details.items()))


class HuffmanService:
    def __init__(self, token_type="chars", max_workers=1):
        self.token_type = token_type
        self.tokenizer = get_tokenizer(token_type)
        self.max_workers = max_workers
        self.logic = HuffmanLogic(listener=_log_event)

    def compress_payload(self, text):
        lines = split_lines(text)
        freqs = count_tokens(lines, self.tokenizer)
        tree = self.logic.build_tree(freqs)
        table = self.logic.generate_codes(tree)

        # One segment per line so lines can be encoded independently.
        segments = self.logic.encode_segments(
            (self.tokenizer(line) for line in lines), table, self.max_workers
        )
        return CompressedPayload(table.decoder, segments, self.token_type, table=table)

    def decompress_payload(self, payload):
        decoded = self.logic.decode_segments(payload.segments, payload.table, self.max_workers)
        # Word tokens keep their trailing spaces, so both token types join with "".
        return "".join("".join(tokens) for tokens in decoded)

    def compress(self, data):
        if not data:
            return b""
        payload = self.compress_payload(data)
        blob = dump_payload(payload)
        logger.info(
            "compressed %d chars into %d bytes (%d payload bits, %d codes)",
            len(data), len(blob), payload.bit_length(), len(payload.decoder),
        )
        return blob

    def decompress(self, blob):
        if not blob:
            return ""
        payload = load_payload(blob)
        if payload.token_type != self.token_type:
            logger.warning(
                "payload was written with %s tokens, service is configured for %s",
                payload.token_type, self.token_type,
            )
        text = self.decompress_payload(payload)
        logger.info("decompressed %d bytes into %d chars", len(blob), len(text))
        return text
