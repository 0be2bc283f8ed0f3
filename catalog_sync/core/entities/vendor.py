"""벤더 도메인 엔티티"""
from dataclasses import dataclass
from typing import Optional
from datetime import datetime
from enum import Enum


class LookupKeyType(Enum):
    """스토어 매핑 조회 키 종류"""
    NAME = "name"
    DOMAIN = "domain"
    PHONE = "phone"


@dataclass(frozen=True)
class VendorIdentity:
    """요청 단위로 확정된 벤더 식별자"""
    vendor_id: str
    strategy: str
    credential_id: Optional[str] = None


@dataclass
class ApiCredential:
    """벤더 API 키"""
    id: str
    credential_value: str
    vendor_id: str
    active: bool = True
    last_used_at: Optional[datetime] = None


@dataclass
class StoreMapping:
    """스토어 이름/도메인/전화번호 -> 벤더 매핑"""
    id: str
    key_type: LookupKeyType
    lookup_key: str
    vendor_id: str
