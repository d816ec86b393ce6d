"""Abstract base class for regulation document sources.

A blob source lists file names and returns raw bytes.  Regulation files
live in a local directory, in a Supabase Storage bucket, or in both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (regulation_rag/providers/blob/):
#   LocalBlobSource, SupabaseStorageBlobSource, CompositeBlobSource
class IBlobSource(ABC):
    """Contract for listing and reading regulation documents."""

    @abstractmethod
    async def list(self, prefix: str = "") -> list[str]:
        """Return the names of supported documents (``.pdf``, ``.md``, ``.txt``).

        Parameters
        ----------
        prefix:
            Only names starting with *prefix* are returned.

        Raises
        ------
        regulation_rag.utils.errors.BlobSourceError
            If the listing itself fails.
        """

    @abstractmethod
    async def read(self, filename: str) -> bytes:
        """Return the raw contents of *filename*.

        Raises
        ------
        regulation_rag.utils.errors.BlobSourceError
            If the file does not exist or cannot be read.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local:docs/regulations"``."""
