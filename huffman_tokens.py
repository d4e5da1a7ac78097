# filename: huffman_tokens.py

import re
from collections import Counter

# A run of non-spaces followed by its space, or a trailing run with no space.
_WORD = re.compile(r"[^ ]* |[^ ]+")


def split_lines(text):
    return text.splitlines(keepends=True)


def char_tokens(line):
    return list(line)


def word_tokens(line):
    """Split after every space, keeping the space on the preceding word.

    ``"Hello world! \\n"`` gives ``["Hello ", "world! ", "\\n"]`` so that
    joining the tokens always restores the line.
    """
    return _WORD.findall(line)


TOKENIZERS = {
    "chars": char_tokens,
    "words": word_tokens,
}


def get_tokenizer(name):
    try:
        return TOKENIZERS[name]
    except KeyError:
        raise ValueError(
            f"unknown token type {name!r}, expected one of: {', '.join(TOKENIZERS)}"
        ) from None


def count_tokens(lines, tokenizer):
    # Counter keeps first-occurrence order, which fixes the tree's tie-breaks.
    freqs = Counter()
    for line in lines:
        freqs.update(tokenizer(line))
    return freqs
