"""동기화 결과 및 감사 로그 도메인 엔티티"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from datetime import datetime

from catalog_sync.core.entities.product import SourceChannel


@dataclass
class RejectedItem:
    """처리하지 못한 상품"""
    reference: str  # external_id 또는 "#인덱스"
    reason: str

    def to_message(self) -> str:
        return f"Product {self.reference}: {self.reason}"


@dataclass
class SyncOutcome:
    """요청 단위 동기화 결과"""
    accepted_count: int = 0
    rejected_items: List[RejectedItem] = field(default_factory=list)
    listing_ids: List[str] = field(default_factory=list)

    def add_success(self, listing_id: str) -> None:
        """성공 추가"""
        self.accepted_count += 1
        self.listing_ids.append(listing_id)

    def add_failure(self, reference: str, reason: str) -> None:
        """실패 추가"""
        self.rejected_items.append(RejectedItem(reference=reference, reason=reason))

    @property
    def error_count(self) -> int:
        return len(self.rejected_items)

    @property
    def total_count(self) -> int:
        return self.accepted_count + self.error_count

    def error_messages(self) -> List[str]:
        return [item.to_message() for item in self.rejected_items]

    def summary(self) -> str:
        """감사 로그용 요약 메시지"""
        message = f"Successfully synced {self.accepted_count} products"
        if self.error_count:
            message += f" with {self.error_count} errors"
        return message


@dataclass
class AuditEntry:
    """요청 감사 로그 (요청당 1건, 추가 전용)"""
    channel: SourceChannel
    request_method: str
    request_path: str
    client_ip: str = "unknown"
    user_agent: str = ""
    vendor_id: Optional[str] = None
    credential_id: Optional[str] = None
    http_status: Optional[int] = None
    message: Optional[str] = None
    raw_request: Optional[Any] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None

    def start(self, now: datetime) -> None:
        """요청 처리 시작"""
        self.started_at = now

    def complete(self, now: datetime, http_status: int, message: str) -> None:
        """요청 처리 종료"""
        self.http_status = http_status
        self.message = message
        self.completed_at = now

        if self.started_at:
            self.duration_ms = (self.completed_at - self.started_at).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리 변환 (직렬화용)"""
        return {
            'channel': self.channel.value,
            'request_method': self.request_method,
            'request_path': self.request_path,
            'client_ip': self.client_ip,
            'user_agent': self.user_agent,
            'vendor_id': self.vendor_id,
            'credential_id': self.credential_id,
            'http_status': self.http_status,
            'message': self.message,
            'raw_request': self.raw_request,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_ms': self.duration_ms,
        }
