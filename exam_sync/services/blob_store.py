"""
Blob store adapter: raw callback payloads go to a Supabase storage bucket.
"""

import logging

from supabase import AsyncClient

logger = logging.getLogger(__name__)


class BlobStore:
    """Abstract blob store"""

    bucket: str = ""

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Write bytes under a new key; returns the stored path"""
        raise NotImplementedError


class SupabaseBlobStore(BlobStore):
    """Blob store backed by a Supabase storage bucket"""

    def __init__(self, client: AsyncClient, bucket: str):
        self.client = client
        self.bucket = bucket

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        # upsert stays off: keys are unique per delivery and must never be overwritten
        await self.client.storage.from_(self.bucket).upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "false"},
        )
        return path
