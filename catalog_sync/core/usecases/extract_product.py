"""AI 상품 추출 유즈케이스

추출 서비스 호출이 어떤 이유로 실패하더라도 예외를 전파하지 않고
입력 텍스트 일부를 제목으로 하는 최소 결과를 반환한다.
"""
from typing import Any, Dict

from catalog_sync.core.entities.product import ListingStatus
from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.extraction_port import ExtractionPort, PRODUCT_EXTRACTION_SCHEMA
from catalog_sync.core.usecases.normalize_payload import UNTITLED_PRODUCT
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TITLE_LENGTH = 120
EXTRACTED_FIELDS = frozenset(PRODUCT_EXTRACTION_SCHEMA["properties"])
LIST_FIELDS = frozenset({"tags", "images"})


class ExtractionAdapter:
    """추출 포트 래퍼 (실패시 결정적 기본값)"""

    def __init__(self, extraction_port: ExtractionPort):
        self.extraction_port = extraction_port

    async def extract(self, text: str, has_media: bool = False) -> Dict[str, Any]:
        """자유 텍스트에서 상품 필드 추출"""
        try:
            raw = await self.extraction_port.extract_product(text, has_media)
            if not isinstance(raw, dict):
                raise UpstreamError("extraction returned a non-object result", service="extraction")
        except Exception as e:
            logger.error(f"AI 추출 실패, 기본값 사용: {e}")
            return self.fallback(text)

        fragment = self._sanitize(raw)
        if not fragment.get("title"):
            fragment["title"] = self.fallback(text)["title"]
        return fragment

    @staticmethod
    def fallback(text: str) -> Dict[str, Any]:
        """입력 텍스트 앞부분만 제목으로 사용"""
        title = (text or "").strip() or UNTITLED_PRODUCT
        return {"title": title[:FALLBACK_TITLE_LENGTH]}

    @staticmethod
    def _sanitize(raw: Dict[str, Any]) -> Dict[str, Any]:
        """선언되지 않은 필드, 허용되지 않은 상태값 제거"""
        fragment = {}
        for key, value in raw.items():
            if key not in EXTRACTED_FIELDS or value is None:
                continue
            if key in LIST_FIELDS and not isinstance(value, list):
                continue
            fragment[key] = value

        title = fragment.get("title")
        if not isinstance(title, str) or not title.strip():
            fragment.pop("title", None)

        # 상태값은 기본값으로 채우지 않고 제거 (이후 채널 기본값 적용)
        if "status" in fragment and ListingStatus.parse(fragment["status"]) is None:
            del fragment["status"]

        return fragment
