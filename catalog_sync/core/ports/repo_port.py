"""저장소 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from typing import Optional
from datetime import datetime

from catalog_sync.core.entities.product import CanonicalProduct, Listing
from catalog_sync.core.entities.vendor import ApiCredential, StoreMapping, LookupKeyType
from catalog_sync.core.entities.sync_outcome import AuditEntry


class CatalogRepositoryPort(ABC):
    """카탈로그 저장소 인터페이스"""

    # 벤더 인증 관련 (읽기 전용, last_used_at 갱신만 허용)
    @abstractmethod
    async def find_active_credential(self, credential_value: str) -> Optional[ApiCredential]:
        """활성 API 키를 값으로 정확히 조회"""
        pass

    @abstractmethod
    async def touch_credential(self, credential_id: str, used_at: datetime) -> None:
        """API 키 마지막 사용 시각 갱신"""
        pass

    @abstractmethod
    async def find_store_mapping(self, key_type: LookupKeyType, lookup_key: str) -> Optional[StoreMapping]:
        """스토어 매핑 조회"""
        pass

    # Listing 관련
    @abstractmethod
    async def upsert_listing(self, vendor_id: str, product: CanonicalProduct, synced_at: datetime) -> Listing:
        """(vendor_id, external_id) 기준 리스팅 업서트"""
        pass

    @abstractmethod
    async def get_listing(self, vendor_id: str, external_id: str) -> Optional[Listing]:
        """리스팅 조회"""
        pass

    # 감사 로그
    @abstractmethod
    async def save_audit_entry(self, entry: AuditEntry) -> None:
        """요청 감사 로그 저장"""
        pass
