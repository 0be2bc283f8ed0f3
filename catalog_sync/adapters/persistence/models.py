"""SQLAlchemy 모델"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Float, Index, UniqueConstraint
)
from sqlalchemy.sql import func

from catalog_sync.shared.config import Settings


# 데이터베이스 모델 베이스
class Base(DeclarativeBase):
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """비동기 엔진 생성"""
    return create_async_engine(settings.database_url, echo=settings.log_level == "DEBUG")


async def init_models(engine: AsyncEngine) -> None:
    """테이블 생성 (없는 테이블만)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# 벤더 API 키 테이블 (별도 프로비저닝, 파이프라인은 조회/last_used_at 갱신만)
class VendorApiKey(Base):
    __tablename__ = "vendor_api_keys"

    id = Column(String, primary_key=True, index=True)
    api_key = Column(String, nullable=False, unique=True)
    vendor_id = Column(String, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_vendor_api_keys_key_active', 'api_key', 'is_active'),
    )


# 스토어 이름/도메인/전화번호 -> 벤더 매핑 테이블
class VendorStoreMapping(Base):
    __tablename__ = "vendor_store_mappings"

    id = Column(String, primary_key=True, index=True)
    key_type = Column(String, nullable=False)  # 'name', 'domain', 'phone'
    lookup_key = Column(String, nullable=False)
    vendor_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('key_type', 'lookup_key', name='uq_vendor_store_mappings_key'),
    )


# 리스팅 테이블
class VendorListing(Base):
    __tablename__ = "vendor_listings"

    id = Column(String, primary_key=True, index=True)
    vendor_id = Column(String, nullable=False)
    external_id = Column(String, nullable=False)

    # 기본 상품 정보
    title = Column(String, nullable=False)
    description = Column(Text)
    price = Column(Float)
    currency = Column(String)
    category = Column(String, index=True)
    inventory_count = Column(Integer, default=0, nullable=False)
    status = Column(String, nullable=False, default="active")  # 'active', 'inactive', 'draft'
    tags = Column(Text)  # JSON array
    images = Column(Text)  # JSON array
    location = Column(String)
    metadata_json = Column("metadata", Text)  # JSON object
    source = Column(String, nullable=False)  # 'push', 'platform_webhook', 'conversational'
    is_visible = Column(Boolean, default=True, nullable=False)

    # 동기화 정보
    synced_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('vendor_id', 'external_id', name='uq_vendor_listings_vendor_external'),
        Index('ix_vendor_listings_vendor_status', 'vendor_id', 'status'),
        Index('ix_vendor_listings_synced', 'synced_at'),
    )


# 요청 감사 로그 테이블
class SyncRequestLog(Base):
    __tablename__ = "sync_request_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vendor_id = Column(String, index=True)
    credential_id = Column(String)
    channel = Column(String, nullable=False)
    request_method = Column(String, nullable=False)
    request_path = Column(String, nullable=False)
    http_status = Column(Integer, nullable=False)
    message = Column(Text)
    duration_ms = Column(Float)
    client_ip = Column(String)
    user_agent = Column(String)
    raw_request = Column(Text)  # JSON

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_sync_request_logs_vendor_created', 'vendor_id', 'created_at'),
        Index('ix_sync_request_logs_status_created', 'http_status', 'created_at'),
    )
