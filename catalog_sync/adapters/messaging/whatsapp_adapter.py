"""WhatsApp Cloud API 어댑터"""
from typing import Optional

import httpx

from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.messaging_port import MessagingPort, MediaContent
from catalog_sync.shared.logging import LoggerMixin


class WhatsAppMessagingAdapter(MessagingPort, LoggerMixin):
    """메시지 발송 및 미디어 다운로드"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: Optional[str],
        phone_number_id: Optional[str],
        api_url: str = "https://graph.facebook.com/v20.0"
    ):
        self.client = client
        self.token = token
        self.phone_number_id = phone_number_id
        self.api_url = api_url.rstrip('/')

    @property
    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    async def send_text(self, recipient: str, body: str) -> bool:
        """텍스트 메시지 발송 (실패는 로그만 남김)"""
        if not self.token or not self.phone_number_id:
            self.logger.warning("WhatsApp 설정이 없어 메시지를 보내지 않음")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "to": recipient,
            "type": "text",
            "text": {"preview_url": False, "body": body},
        }

        try:
            response = await self.client.post(
                f"{self.api_url}/{self.phone_number_id}/messages",
                headers={**self._auth_headers, "Content-Type": "application/json"},
                json=payload
            )
        except httpx.HTTPError as e:
            self.logger.error(f"WhatsApp 발송 예외: {e}")
            return False

        if response.status_code >= 400:
            self.logger.error(f"WhatsApp 발송 실패 {response.status_code}: {response.text[:500]}")
            return False

        return True

    async def download_media(self, media_id: str) -> MediaContent:
        """미디어 URL 조회 후 바이너리 다운로드"""
        if not self.token:
            raise UpstreamError("WhatsApp token is not configured", service="whatsapp")

        try:
            meta_response = await self.client.get(f"{self.api_url}/{media_id}", headers=self._auth_headers)
            meta_response.raise_for_status()
            meta = meta_response.json()

            media_response = await self.client.get(meta["url"], headers=self._auth_headers)
            media_response.raise_for_status()
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise UpstreamError(f"Media download failed: {e}", service="whatsapp") from e

        return MediaContent(
            content=media_response.content,
            mime_type=meta.get("mime_type") or "application/octet-stream"
        )
