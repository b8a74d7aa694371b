"""
String hashing and seeded random generators.

The hash is the 53-bit cyrb53 variant computed over UTF-16 code units, so a
chat created in the browser client and re-evaluated here produces the same
chat-id hash and therefore the same deterministic picks.
"""

import random
from typing import Callable, Optional

_MASK_32 = 0xFFFFFFFF

RandomSource = Callable[[], float]


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply (low 32 bits, unsigned)."""
    return (a * b) & _MASK_32


def get_string_hash(text: str, seed: int = 0) -> int:
    """
    Hash a string into a non-negative integer below 2**53.

    Args:
        text: String to hash. Non-string input hashes to 0.
        seed: Optional seed mixed into the initial state

    Returns:
        Integer hash, stable across processes and platforms
    """
    if not isinstance(text, str):
        return 0

    h1 = (0xDEADBEEF ^ seed) & _MASK_32
    h2 = (0x41C6CE57 ^ seed) & _MASK_32

    data = text.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(data), 2):
        ch = data[i] | (data[i + 1] << 8)
        h1 = _imul(h1 ^ ch, 2654435761)
        h2 = _imul(h2 ^ ch, 1597334677)

    h1 = _imul(h1 ^ (h1 >> 16), 2246822507) ^ _imul(h2 ^ (h2 >> 13), 3266489909)
    h2 = _imul(h2 ^ (h2 >> 16), 2246822507) ^ _imul(h1 ^ (h1 >> 13), 3266489909)

    return 4294967296 * (2097151 & h2) + h1


def create_rng(seed: Optional[int] = None, entropy: bool = False) -> RandomSource:
    """
    Build a zero-argument generator returning floats in [0, 1).

    An explicit seed gives a reproducible sequence. With ``entropy=True`` (or no
    seed at all) the generator draws from the operating system's randomness and
    is not reproducible.
    """
    if entropy or seed is None:
        return random.SystemRandom().random
    return random.Random(seed).random
