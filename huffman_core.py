# filename: huffman_core.py

import heapq
import os
import re
from concurrent.futures import ThreadPoolExecutor
from itertools import count

from bitarray import bitarray, decodetree, frozenbitarray


class HuffmanError(Exception):
    pass


class EmptyInputError(HuffmanError, ValueError):
    def __init__(self, message="cannot build a Huffman tree from an empty frequency table"):
        super().__init__(message)


class UnknownTokenError(HuffmanError, LookupError):
    def __init__(self, token):
        super().__init__(f"token {token!r} has no code in the table")
        self.token = token


class UndecodableBitstreamError(HuffmanError, ValueError):
    def __init__(self, remaining):
        super().__init__(
            f"bitstream has {len(remaining)} trailing bit(s) that match no code: {remaining.to01()}"
        )
        self.remaining = remaining


class HuffmanNode:
    def __init__(self, count):
        self.count = count

    @property
    def is_leaf(self):
        return False


class HuffmanLeaf(HuffmanNode):
    def __init__(self, token, count):
        super().__init__(count)
        self.token = token

    @property
    def is_leaf(self):
        return True

    def __repr__(self):
        return f"HuffmanLeaf({self.token!r}, {self.count})"


class HuffmanInternal(HuffmanNode):
    def __init__(self, left, right):
        super().__init__(left.count + right.count)
        self.left = left
        self.right = right

    def __repr__(self):
        return f"HuffmanInternal({self.count}, {self.left!r}, {self.right!r})"


def iter_nodes(node):
    """Yield every node of the tree, parents before children, left before right."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if not current.is_leaf:
            stack.append(current.right)
            stack.append(current.left)


class CodeTable:
    """Two-way mapping between tokens and their prefix-free codes.

    ``encoder`` maps token -> frozenbitarray and ``decoder`` is its exact
    inverse. ``tree`` is the bitarray decode tree built once for the table.
    The table is never mutated once generated, so it can be shared between
    worker threads.
    """

    def __init__(self, encoder, decoder):
        if len(encoder) != len(decoder):
            raise ValueError("code table assigns more than one code to a token")
        self.encoder = encoder
        self.decoder = decoder
        # decodetree() raises ValueError when one code is a prefix of another.
        self.tree = decodetree(encoder) if encoder else None

    @classmethod
    def from_decoder(cls, decoder):
        encoder = {token: code for code, token in decoder.items()}
        return cls(encoder, dict(decoder))

    def __len__(self):
        return len(self.encoder)

    def __contains__(self, token):
        return token in self.encoder


class HuffmanLogic:
    """Static Huffman codec over any hashable token type.

    ``listener`` is an optional callable invoked as ``listener(event, **details)``
    after each stage; the logic itself has no other side effects.
    """

    def __init__(self, listener=None):
        self.listener = listener

    def _emit(self, event, **details):
        if self.listener is not None:
            self.listener(event, **details)

    def build_tree(self, frequencies):
        if not frequencies:
            raise EmptyInputError()

        # Ties on count are broken by the order nodes entered the queue:
        # leaves in the mapping's iteration order, merged nodes after them.
        sequence = count()
        priority_queue = []
        for token, freq in frequencies.items():
            if freq < 1:
                raise ValueError(f"token {token!r} has non-positive count {freq}")
            priority_queue.append((freq, next(sequence), HuffmanLeaf(token, freq)))
        heapq.heapify(priority_queue)

        while len(priority_queue) > 1:
            _, _, left = heapq.heappop(priority_queue)
            _, _, right = heapq.heappop(priority_queue)
            merged = HuffmanInternal(left, right)
            heapq.heappush(priority_queue, (merged.count, next(sequence), merged))

        root = priority_queue[0][2]
        if self.listener is not None:
            self._emit(
                "tree_built",
                leaves=len(frequencies),
                internal=sum(1 for node in iter_nodes(root) if not node.is_leaf),
                total=root.count,
            )
        return root

    def generate_codes(self, tree):
        encoder = {}
        decoder = {}
        if tree.is_leaf:
            # A one-token alphabet still needs one bit per token.
            self._record(tree.token, bitarray("0"), encoder, decoder)
        else:
            self._walk(tree, bitarray(), encoder, decoder)
        table = CodeTable(encoder, decoder)
        self._emit(
            "codes_generated",
            codes=len(table),
            longest=max(len(code) for code in encoder.values()),
        )
        return table

    def _walk(self, node, prefix, encoder, decoder):
        if node.is_leaf:
            self._record(node.token, prefix, encoder, decoder)
            return
        self._walk(node.left, prefix + bitarray("0"), encoder, decoder)
        self._walk(node.right, prefix + bitarray("1"), encoder, decoder)

    @staticmethod
    def _record(token, path, encoder, decoder):
        code = frozenbitarray(path)
        encoder[token] = code
        decoder[code] = token

    def encode(self, tokens, table):
        tokens = list(tokens)
        out = bitarray()
        try:
            out.encode(table.encoder, tokens)
        except (ValueError, KeyError) as e:
            for token in tokens:
                if token not in table:
                    raise UnknownTokenError(token) from e
            raise
        self._emit("encoded", tokens=len(tokens), bits=len(out))
        return out

    def decode(self, bits, table):
        if not isinstance(bits, bitarray):
            bits = bitarray(bits)
        if table.tree is None:
            if bits:
                raise UndecodableBitstreamError(frozenbitarray(bits))
            return []
        try:
            tokens = list(bits.decode(table.tree))
        except ValueError as e:
            # "incomplete prefix code at position N" or
            # "prefix code unrecognized in bitarray at position N .. M"
            match = _POSITION.search(str(e))
            start = int(match.group(1)) if match else 0
            raise UndecodableBitstreamError(frozenbitarray(bits[start:])) from e
        self._emit("decoded", tokens=len(tokens), bits=len(bits))
        return tokens

    def encode_segments(self, segments, table, max_workers=1):
        """Encode each segment on its own; results keep the segment order.

        Segments must split the input on token boundaries. With more than one
        worker the segments are handed out in contiguous batches. The first
        failing segment's error is raised and no partial result is returned.
        ``max_workers=None`` uses one worker per CPU.
        """
        return self._map_segments(self.encode, segments, table, max_workers)

    def decode_segments(self, segments, table, max_workers=1):
        return self._map_segments(self.decode, segments, table, max_workers)

    @staticmethod
    def _map_segments(func, segments, table, max_workers):
        segments = list(segments)
        workers = max_workers or os.cpu_count() or 1
        if workers == 1 or len(segments) < 2:
            return [func(segment, table) for segment in segments]

        size = -(-len(segments) // (workers * _BATCHES_PER_WORKER))
        batches = [segments[i:i + size] for i in range(0, len(segments), size)]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = pool.map(lambda batch: [func(segment, table) for segment in batch], batches)
            return [result for batch in results for result in batch]


_BATCHES_PER_WORKER = 4
_POSITION = re.compile(r"position (\d+)")
