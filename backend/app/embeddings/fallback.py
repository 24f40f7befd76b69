"""Deterministic hash-based embedding used when no embedding service answers."""

import math

MAX_WORDS = 100
SPREAD = 10
STRIDE = 77


def _word_hash(word: str) -> int:
    """31-multiplier rolling hash, wrapped to a signed 32-bit integer."""
    h = 0
    for ch in word:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def fallback_embedding(text: str, dimensions: int = 768) -> list[float]:
    """Approximate an embedding from word hashes.

    Identical text always produces an identical vector. The result is
    unit-length unless no word contributed any weight, in which case the zero
    vector is returned unchanged.
    """
    vector = [0.0] * dimensions
    words = text.lower().split()[:MAX_WORDS]

    for word in words:
        h = _word_hash(word)
        weight = (h % 1000) / 1000
        for k in range(min(SPREAD, dimensions)):
            vector[(h + k * STRIDE) % dimensions] += weight

    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        return vector
    return [v / magnitude for v in vector]
