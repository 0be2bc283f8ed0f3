"""AI 상품 정보 추출 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from typing import Dict, Any

from catalog_sync.core.entities.product import ListingStatus

# 추출 결과 스키마 (title 필수, 나머지 선택)
PRODUCT_EXTRACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "price": {"type": "number"},
        "currency": {"type": "string"},
        "category": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "images": {"type": "array", "items": {"type": "string"}},
        "location": {"type": "string"},
        "status": {"type": "string", "enum": ListingStatus.values()},
        "external_id": {"type": "string"},
    },
    "required": ["title"],
    "additionalProperties": False,
}

EXTRACTION_INSTRUCTIONS = "Extract marketplace listing data. Do not invent prices. Return JSON only."


class ExtractionPort(ABC):
    """구조화 추출 서비스 인터페이스"""

    @abstractmethod
    async def extract_product(self, text: str, has_media: bool) -> Dict[str, Any]:
        """자유 텍스트에서 상품 필드 추출

        실패시 UpstreamError를 발생시킨다.
        """
        pass
