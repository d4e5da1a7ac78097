#!/usr/bin/env python3
"""
Benchmark runner for the Huffman compressor.

This script:
- Builds the Huffman tree and encodes a text file with char and word tokens
- Optionally decodes again and checks the round trip
- Generates a JSON report tagged with the Python, bitarray and git versions

Run from a checkout (installing the project is not required):
    python evaluation/benchmark.py path/to/book.txt [--repeat N] [--verify]
"""
import json
import os
import platform
import subprocess
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path

# Add the repository root to path so the top-level modules resolve from a checkout
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import bitarray  # noqa: E402

from huffman_core import HuffmanLogic  # noqa: E402
from huffman_format import CompressedPayload, dump_payload  # noqa: E402
from huffman_tokens import TOKENIZERS, count_tokens, split_lines  # noqa: E402


def get_git_commit():
    try:
        result = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return result.stdout.strip()[:8] if result.returncode == 0 else "unknown"


def get_environment_info():
    """Versions that affect the timings."""
    return {
        "python_version": platform.python_version(),
        "bitarray_version": bitarray.__version__,
        "machine": platform.machine(),
        "git_commit": get_git_commit(),
    }


def bench_token_type(text, token_type, repeat=3, verify=False):
    """
    Time tree building plus encoding of text for one token type.

    Args:
        text: The input text
        token_type: Key of TOKENIZERS ("chars" or "words")
        repeat: How many timed runs to take the best of
        verify: If True, also decode and compare with the input

    Returns:
        dict with sizes and timings
    """
    tokenizer = TOKENIZERS[token_type]
    logic = HuffmanLogic()
    lines = split_lines(text)
    freqs = count_tokens(lines, tokenizer)
    tokenized = [tokenizer(line) for line in lines]

    timings = []
    for _ in range(repeat):
        t0 = time.perf_counter()
        table = logic.generate_codes(logic.build_tree(freqs))
        segments = logic.encode_segments(tokenized, table, max_workers=1)
        timings.append(time.perf_counter() - t0)

    payload = CompressedPayload(table.decoder, segments, token_type)
    compressed_size = len(dump_payload(payload))
    original_size = len(text.encode("utf-8"))

    out = {
        "distinct_tokens": len(freqs),
        "original_size": original_size,
        "compressed_size": compressed_size,
        "payload_bits": payload.bit_length(),
        "compression_ratio": round(compressed_size / original_size, 4) if original_size else None,
        "best_encode_ms": round(min(timings) * 1000, 3),
    }

    if verify:
        t2 = time.perf_counter()
        decoded = logic.decode_segments(segments, table, max_workers=1)
        out["decode_ms"] = round((time.perf_counter() - t2) * 1000, 3)
        if "".join("".join(tokens) for tokens in decoded) != text:
            raise ValueError(f"{token_type}: round-trip failed (data corrupted)")
        out["verified"] = True

    return out


def generate_output_path():
    """Generate output path in format: evaluation/YYYY-MM-DD/HH-MM-SS/report.json"""
    now = datetime.now()
    output_dir = Path(__file__).parent / now.strftime("%Y-%m-%d") / now.strftime("%H-%M-%S")
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / "report.json"


def main(argv=None):
    """Main entry point for the benchmark."""
    import argparse

    parser = argparse.ArgumentParser(description="Benchmark Huffman compression of a text file")
    parser.add_argument("input", type=str, help="UTF-8 text file to compress")
    parser.add_argument("--repeat", type=int, default=3, help="timed runs per token type")
    parser.add_argument("--verify", action="store_true", help="also decode and check the round trip")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output JSON file path (default: evaluation/YYYY-MM-DD/HH-MM-SS/report.json)"
    )
    args = parser.parse_args(argv)

    run_id = uuid.uuid4().hex[:8]
    started_at = datetime.now()
    print(f"Run ID: {run_id}")

    text = Path(args.input).read_text(encoding="utf-8")
    results = {}
    for token_type in TOKENIZERS:
        results[token_type] = bench_token_type(text, token_type, repeat=args.repeat, verify=args.verify)
        r = results[token_type]
        print(
            f"  {token_type:5}  tokens {r['distinct_tokens']:>7}  "
            f"ratio {r['compression_ratio']}  encode {r['best_encode_ms']} ms"
        )

    finished_at = datetime.now()
    report = {
        "run_id": run_id,
        "started_at": started_at.isoformat(),
        "finished_at": finished_at.isoformat(),
        "duration_seconds": round((finished_at - started_at).total_seconds(), 6),
        "input": str(args.input),
        "environment": get_environment_info(),
        "results": results,
    }

    output_path = Path(args.output) if args.output else generate_output_path()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2)
    print(f"Report saved to: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
