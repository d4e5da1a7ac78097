# filename: huffman_cli.py

"""
Compress or decompress text with a static Huffman code.

The default is to compress stdin to stdout using character tokens. Word
tokens (split after each space) often compress prose better. A payload
remembers its token type, so decompression needs no -t flag.

Usage:
    huffman-compress -i book.txt -o book.huf
    huffman-compress -m decompress -i book.huf -o book.txt
"""

import argparse
import logging
import sys

from huffman_core import HuffmanError
from huffman_service import HuffmanService
from huffman_tokens import TOKENIZERS

logger = logging.getLogger("huffman_cli")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="huffman-compress",
        description="A compression and decompression tool based on Huffman coding.",
    )
    parser.add_argument(
        "-m", "--mode", choices=("compress", "decompress"), default="compress",
        help="compress text (default) or decompress a payload",
    )
    parser.add_argument(
        "-t", "--token-type", choices=sorted(TOKENIZERS), default="chars",
        help="split text into single characters (default) or space-terminated words",
    )
    parser.add_argument(
        "-i", "--in-file", default=None,
        help="input file path, otherwise read from stdin",
    )
    parser.add_argument(
        "-o", "--out-file", default=None,
        help="output file path, otherwise write to stdout",
    )
    parser.add_argument(
        "-w", "--workers", type=int, default=1,
        help="worker threads for per-line encoding and decoding (default 1, no pool)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="log codec progress to stderr",
    )
    args = parser.parse_args(argv)
    if args.workers < 1:
        parser.error("--workers must be at least 1")
    return args


def _read_input(path):
    if path is None:
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def _write_output(path, data):
    if path is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(path, "wb") as f:
        f.write(data)


def run(args):
    service = HuffmanService(token_type=args.token_type, max_workers=args.workers)
    raw = _read_input(args.in_file)
    if args.mode == "compress":
        out = service.compress(raw.decode("utf-8"))
    else:
        out = service.decompress(raw).encode("utf-8")
    _write_output(args.out_file, out)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    try:
        run(args)
    except (HuffmanError, UnicodeDecodeError, OSError) as e:
        logger.debug("failed with %r", e, exc_info=True)
        print(f"huffman-compress: error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
