"""Regulation document sources.

    LocalBlobSource            -- a directory on disk (docs/regulations, docs)
    SupabaseStorageBlobSource  -- a Supabase Storage bucket folder
    CompositeBlobSource        -- several of the above, later sources win
"""

from regulation_rag.providers.blob.composite_blob_source import CompositeBlobSource
from regulation_rag.providers.blob.local_blob_source import LocalBlobSource
from regulation_rag.providers.blob.supabase_blob_source import SupabaseStorageBlobSource

__all__ = ["CompositeBlobSource", "LocalBlobSource", "SupabaseStorageBlobSource"]
