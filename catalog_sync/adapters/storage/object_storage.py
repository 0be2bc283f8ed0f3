"""Supabase Storage REST 어댑터"""
from urllib.parse import quote

import httpx

from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.messaging_port import MediaStoragePort, MediaContent
from catalog_sync.shared.logging import LoggerMixin


class ObjectStorageAdapter(MediaStoragePort, LoggerMixin):
    """버킷에 이미지 업로드 (같은 경로는 덮어씀)"""

    def __init__(self, client: httpx.AsyncClient, storage_url: str, service_key: str, bucket: str):
        self.client = client
        self.storage_url = storage_url.rstrip('/')
        self.service_key = service_key
        self.bucket = bucket

    def public_url(self, path: str) -> str:
        return f"{self.storage_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def store_image(self, path: str, media: MediaContent) -> str:
        """이미지 업로드 후 공개 URL 반환"""
        url = f"{self.storage_url}/storage/v1/object/{quote(self.bucket)}/{quote(path)}"

        self.logger.info(f"이미지 업로드: bucket={self.bucket}, path={path}, size={len(media.content)}")
        try:
            response = await self.client.put(
                url,
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": media.mime_type,
                    "x-upsert": "true",
                },
                content=media.content
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Storage upload failed: {e}", service="storage") from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"Storage upload failed: {response.text[:200]}",
                service="storage",
                status_code=response.status_code
            )

        return self.public_url(path)
