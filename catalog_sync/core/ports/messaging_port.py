"""메신저/미디어 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class MediaContent:
    """메신저에서 내려받은 미디어"""
    content: bytes
    mime_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/")[-1] if "/" in self.mime_type else ""
        return (subtype or "jpg").replace("+xml", "")


class MessagingPort(ABC):
    """메신저 연동 인터페이스"""

    @abstractmethod
    async def send_text(self, recipient: str, body: str) -> bool:
        """텍스트 메시지 발송 (실패해도 예외를 던지지 않음)"""
        pass

    @abstractmethod
    async def download_media(self, media_id: str) -> MediaContent:
        """첨부 미디어 다운로드 (실패시 UpstreamError)"""
        pass


class MediaStoragePort(ABC):
    """이미지 저장소 인터페이스"""

    @abstractmethod
    async def store_image(self, path: str, media: MediaContent) -> str:
        """이미지 업로드 후 공개 URL 반환 (실패시 UpstreamError)"""
        pass
