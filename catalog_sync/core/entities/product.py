"""상품/리스팅 도메인 엔티티"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from datetime import datetime
from enum import Enum


class ListingStatus(Enum):
    """리스팅 상태"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"

    @classmethod
    def values(cls) -> List[str]:
        return [status.value for status in cls]

    @classmethod
    def parse(cls, value: Any) -> Optional["ListingStatus"]:
        """허용된 상태 값이면 변환, 아니면 None"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class SourceChannel(Enum):
    """상품 유입 채널"""
    PUSH = "push"                          # API 키 기반 직접 전송
    PLATFORM_WEBHOOK = "platform_webhook"  # 이커머스 플랫폼 웹훅
    CONVERSATIONAL = "conversational"      # 메신저 자유 텍스트


REQUIRED_FIELDS_MESSAGE = "missing required fields: external_id and title are required"


@dataclass
class CanonicalProduct:
    """모든 채널이 수렴하는 표준 상품 레코드"""
    external_id: Optional[str]
    title: Optional[str]
    source_channel: SourceChannel
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    inventory_count: int = 0
    status: ListingStatus = ListingStatus.ACTIVE
    tags: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    location: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def has_required_fields(self) -> bool:
        """필수 필드(external_id, title) 존재 여부"""
        return bool(self.external_id) and bool(self.title and self.title.strip())

    def reference(self, index: int) -> str:
        """거부 사유 기록용 식별자 (external_id 없으면 인덱스)"""
        return self.external_id or f"#{index}"


@dataclass
class Listing:
    """카탈로그에 저장된 리스팅"""
    id: str
    vendor_id: str
    external_id: str
    title: str
    source_channel: SourceChannel
    status: ListingStatus
    synced_at: datetime
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    inventory_count: int = 0
    tags: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    location: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_visible: bool = True
    created_at: Optional[datetime] = None
