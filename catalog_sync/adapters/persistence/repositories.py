"""리포지토리 구현체"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from datetime import datetime
import json
import secrets
import uuid

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from catalog_sync.core.entities.inbound import normalize_msisdn
from catalog_sync.core.entities.product import CanonicalProduct, Listing, ListingStatus, SourceChannel
from catalog_sync.core.entities.sync_outcome import AuditEntry
from catalog_sync.core.entities.vendor import ApiCredential, StoreMapping, LookupKeyType
from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.repo_port import CatalogRepositoryPort
from catalog_sync.adapters.persistence.models import (
    VendorApiKey, VendorStoreMapping, VendorListing, SyncRequestLog
)
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)

# 재동기화시 덮어쓰는 컬럼 (id, vendor_id, external_id, created_at 제외 전체)
LISTING_REPLACED_COLUMNS = (
    "title", "description", "price", "currency", "category", "inventory_count",
    "status", "tags", "images", "location", "metadata", "source", "is_visible",
    "synced_at", "updated_at",
)

# 컬럼명과 ORM 속성명이 다른 경우
COLUMN_ATTRIBUTES = {"metadata": "metadata_json"}

NATIVE_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def normalize_lookup_key(key_type: LookupKeyType, lookup_key: str) -> str:
    """매핑 키 정규화 (도메인은 소문자, 전화번호는 숫자만)"""
    if key_type == LookupKeyType.DOMAIN:
        return lookup_key.strip().lower()
    if key_type == LookupKeyType.PHONE:
        return normalize_msisdn(lookup_key)
    return lookup_key.strip()


class SqlAlchemyCatalogRepository(CatalogRepositoryPort):
    """카탈로그 리포지토리 구현체

    작업마다 별도 세션을 사용하므로 한 항목의 실패가 다른 항목의 트랜잭션에 영향을 주지 않는다.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"{operation} 실패: {e}")
                raise UpstreamError(f"{operation} failed", service="database") from e

    async def find_active_credential(self, credential_value: str) -> Optional[ApiCredential]:
        """활성 API 키 조회"""
        async with self._session("credential lookup") as session:
            query = select(VendorApiKey).where(
                VendorApiKey.api_key == credential_value,
                VendorApiKey.is_active == True
            )
            result = await session.execute(query)
            row = result.scalar_one_or_none()

        return self._map_credential(row) if row else None

    async def touch_credential(self, credential_id: str, used_at: datetime) -> None:
        """API 키 마지막 사용 시각 갱신"""
        async with self._session("credential touch") as session:
            query = update(VendorApiKey).where(VendorApiKey.id == credential_id).values(last_used_at=used_at)
            await session.execute(query)
            await session.commit()

    async def find_store_mapping(self, key_type: LookupKeyType, lookup_key: str) -> Optional[StoreMapping]:
        """스토어 매핑 조회"""
        async with self._session("store mapping lookup") as session:
            query = select(VendorStoreMapping).where(
                VendorStoreMapping.key_type == key_type.value,
                VendorStoreMapping.lookup_key == normalize_lookup_key(key_type, lookup_key)
            )
            result = await session.execute(query)
            row = result.scalars().first()

        return self._map_store_mapping(row) if row else None

    async def upsert_listing(self, vendor_id: str, product: CanonicalProduct, synced_at: datetime) -> Listing:
        """(vendor_id, external_id) 기준 업서트"""
        values = self._listing_values(vendor_id, product, synced_at)

        async with self._session("listing upsert") as session:
            insert_fn = NATIVE_UPSERT_DIALECTS.get(self.engine.dialect.name)

            if insert_fn is not None:
                stmt = insert_fn(VendorListing.__table__).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["vendor_id", "external_id"],
                    set_={column: stmt.excluded[column] for column in LISTING_REPLACED_COLUMNS}
                )
                await session.execute(stmt)
            else:
                await self._upsert_portable(session, values)

            row = await self._select_listing(session, vendor_id, product.external_id)
            await session.commit()

        logger.info(f"리스팅 저장 완료: {vendor_id}/{product.external_id}")
        return self._map_listing(row)

    async def get_listing(self, vendor_id: str, external_id: str) -> Optional[Listing]:
        """리스팅 조회"""
        async with self._session("listing lookup") as session:
            row = await self._select_listing(session, vendor_id, external_id)

        return self._map_listing(row) if row else None

    async def save_audit_entry(self, entry: AuditEntry) -> None:
        """요청 감사 로그 저장"""
        data = entry.to_dict()
        # 시작/종료 시각은 duration_ms로만 저장
        data.pop('started_at')
        data.pop('completed_at')
        if data['raw_request'] is not None:
            data['raw_request'] = json.dumps(data['raw_request'], ensure_ascii=False, default=str)

        async with self._session("audit log") as session:
            session.add(SyncRequestLog(**data))
            await session.commit()

    async def list_audit_entries(self, vendor_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """감사 로그 조회 (최근 순)"""
        async with self._session("audit log lookup") as session:
            query = select(SyncRequestLog).order_by(SyncRequestLog.id.desc()).limit(limit)
            if vendor_id is not None:
                query = query.where(SyncRequestLog.vendor_id == vendor_id)
            result = await session.execute(query)
            rows = result.scalars().all()

        return [
            {
                'vendor_id': row.vendor_id,
                'credential_id': row.credential_id,
                'channel': row.channel,
                'request_method': row.request_method,
                'request_path': row.request_path,
                'http_status': row.http_status,
                'message': row.message,
                'duration_ms': row.duration_ms,
                'client_ip': row.client_ip,
                'user_agent': row.user_agent,
                'raw_request': _load_json(row.raw_request, None),
            }
            for row in rows
        ]

    # 프로비저닝 (파이프라인 외부에서 사용)
    async def add_credential(self, vendor_id: str, api_key: Optional[str] = None, active: bool = True) -> ApiCredential:
        """API 키 발급"""
        row = VendorApiKey(
            id=str(uuid.uuid4()),
            api_key=api_key or secrets.token_urlsafe(32),
            vendor_id=vendor_id,
            is_active=active,
            last_used_at=None
        )
        async with self._session("credential provisioning") as session:
            session.add(row)
            await session.commit()

        logger.info(f"API 키 발급 완료: vendor={vendor_id}")
        return self._map_credential(row)

    async def set_credential_active(self, credential_id: str, active: bool) -> None:
        """API 키 활성/비활성"""
        async with self._session("credential update") as session:
            query = update(VendorApiKey).where(VendorApiKey.id == credential_id).values(is_active=active)
            await session.execute(query)
            await session.commit()

    async def add_store_mapping(self, key_type: LookupKeyType, lookup_key: str, vendor_id: str) -> StoreMapping:
        """스토어 매핑 등록"""
        row = VendorStoreMapping(
            id=str(uuid.uuid4()),
            key_type=key_type.value,
            lookup_key=normalize_lookup_key(key_type, lookup_key),
            vendor_id=vendor_id
        )
        async with self._session("store mapping provisioning") as session:
            session.add(row)
            await session.commit()

        logger.info(f"스토어 매핑 등록 완료: {key_type.value}={row.lookup_key} -> {vendor_id}")
        return self._map_store_mapping(row)

    @staticmethod
    async def _select_listing(session: AsyncSession, vendor_id: str, external_id: str) -> Optional[VendorListing]:
        query = select(VendorListing).where(
            VendorListing.vendor_id == vendor_id,
            VendorListing.external_id == external_id
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def _upsert_portable(session: AsyncSession, values: Dict[str, Any]) -> None:
        """네이티브 업서트를 지원하지 않는 DB용 조회 후 저장"""
        attributes = {COLUMN_ATTRIBUTES.get(key, key): value for key, value in values.items()}
        query = select(VendorListing).where(
            VendorListing.vendor_id == values["vendor_id"],
            VendorListing.external_id == values["external_id"]
        )
        result = await session.execute(query)
        existing = result.scalar_one_or_none()

        if existing:
            for column in LISTING_REPLACED_COLUMNS:
                attribute = COLUMN_ATTRIBUTES.get(column, column)
                setattr(existing, attribute, attributes[attribute])
        else:
            session.add(VendorListing(**attributes))
        await session.flush()

    @staticmethod
    def _listing_values(vendor_id: str, product: CanonicalProduct, synced_at: datetime) -> Dict[str, Any]:
        """도메인 엔티티를 컬럼 값으로 변환"""
        return {
            'id': str(uuid.uuid4()),
            'vendor_id': vendor_id,
            'external_id': product.external_id,
            'title': product.title,
            'description': product.description,
            'price': product.price,
            'currency': product.currency,
            'category': product.category,
            'inventory_count': product.inventory_count,
            'status': product.status.value,
            'tags': json.dumps(product.tags, ensure_ascii=False),
            'images': json.dumps(product.images, ensure_ascii=False),
            'location': product.location,
            'metadata': json.dumps(product.metadata, ensure_ascii=False, default=str),
            'source': product.source_channel.value,
            'is_visible': product.status == ListingStatus.ACTIVE,
            'synced_at': synced_at,
            'updated_at': synced_at,
        }

    @staticmethod
    def _map_credential(row: VendorApiKey) -> ApiCredential:
        return ApiCredential(
            id=row.id,
            credential_value=row.api_key,
            vendor_id=row.vendor_id,
            active=bool(row.is_active),
            last_used_at=row.last_used_at
        )

    @staticmethod
    def _map_store_mapping(row: VendorStoreMapping) -> StoreMapping:
        return StoreMapping(
            id=row.id,
            key_type=LookupKeyType(row.key_type),
            lookup_key=row.lookup_key,
            vendor_id=row.vendor_id
        )

    @staticmethod
    def _map_listing(row: VendorListing) -> Listing:
        return Listing(
            id=row.id,
            vendor_id=row.vendor_id,
            external_id=row.external_id,
            title=row.title,
            source_channel=SourceChannel(row.source),
            status=ListingStatus(row.status),
            synced_at=row.synced_at,
            description=row.description,
            price=row.price,
            currency=row.currency,
            category=row.category,
            inventory_count=row.inventory_count or 0,
            tags=_load_json(row.tags, []),
            images=_load_json(row.images, []),
            location=row.location,
            metadata=_load_json(row.metadata_json, {}),
            is_visible=bool(row.is_visible),
            created_at=row.created_at
        )


def _load_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except ValueError:
        logger.warning(f"JSON 컬럼 파싱 실패: {value[:100]}")
        return default
