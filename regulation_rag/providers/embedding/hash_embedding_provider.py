"""Deterministic local embedding provider used when the remote one fails.

Bag-of-words feature hashing: every whitespace token of the lowercased
text is hashed to a bucket and adds ``1 / (position + 1)`` there, so early
tokens (titles, headings) weigh more.  The vector is L2-normalized; text
without tokens maps to the zero vector.

The token hash is the classic 31-multiplier string hash over UTF-16 code
units, wrapped to a signed 32-bit integer.  It does not depend on
``PYTHONHASHSEED``, so vectors are identical across processes and match
corpora written by earlier deployments that used the same scheme.
"""

from __future__ import annotations

import numpy as np

from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.models.regulation import EmbeddingIntent

_DEFAULT_DIMENSION = 768


def token_hash(token: str) -> int:
    """Return the signed 32-bit ``h = h * 31 + unit`` hash of *token*."""
    h = 0
    encoded = token.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def hash_vector(text: str, dimension: int = _DEFAULT_DIMENSION) -> list[float]:
    """Embed *text* into a unit vector of length *dimension* (or all zeros)."""
    vector = np.zeros(dimension, dtype=np.float64)
    for position, token in enumerate(text.lower().split()):
        vector[abs(token_hash(token)) % dimension] += 1.0 / (position + 1)

    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector /= norm
    return vector.tolist()


class HashEmbeddingProvider(IEmbeddingProvider):
    """Never-failing embedder; intent is ignored."""

    def __init__(self, dimension: int = _DEFAULT_DIMENSION) -> None:
        if dimension <= 0:
            msg = f"dimension must be positive, got {dimension}"
            raise ValueError(msg)
        self._dimension = dimension

    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        return [hash_vector(t, self._dimension) for t in texts]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hash_embedding"

    def is_available(self) -> bool:
        return True
