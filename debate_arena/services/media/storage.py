"""
Audio storage on Supabase Storage.

Uploads go straight to the Storage REST API with the service key; the public
URL is derived from the bucket and path, so it can be stored on the turn row
right away.

Layout: {bucket}/{debate_id}/{turn_id}.mp3
"""

import logging
from typing import Optional

import httpx

from debate_arena.config import get_settings
from debate_arena.services.debate.protocols import BaseAudioStorage

logger = logging.getLogger(__name__)


class SupabaseAudioStorage(BaseAudioStorage):
    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.service_key = service_key or settings.supabase_service_key
        self.bucket = bucket or settings.audio_bucket
        self.timeout = settings.request_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def upload(self, path: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        """
        Upload (or overwrite) a blob and return its public URL.

        Raises:
            httpx.HTTPError: on transport failure or non-2xx status
        """
        client = await self._get_client()
        response = await client.post(
            f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
            content=data,
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
                "Content-Type": content_type,
                "x-upsert": "true",
            },
        )
        response.raise_for_status()

        logger.info(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")
        return self.public_url(path)

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
