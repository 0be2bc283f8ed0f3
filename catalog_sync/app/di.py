"""의존성 주입 설정"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from catalog_sync.core.ports.repo_port import CatalogRepositoryPort
from catalog_sync.core.ports.clock_port import ClockPort
from catalog_sync.core.ports.extraction_port import ExtractionPort
from catalog_sync.core.ports.messaging_port import MessagingPort, MediaStoragePort
from catalog_sync.core.usecases.extract_product import ExtractionAdapter
from catalog_sync.core.usecases.normalize_payload import PayloadNormalizer, build_channel_policies
from catalog_sync.core.usecases.reconcile_listing import ListingReconciler
from catalog_sync.core.usecases.sync_catalog import SyncCatalogUseCase
from catalog_sync.shared.config import Settings
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """프로세스 단위로 생성되는 어댑터 모음"""
    settings: Settings
    repository: CatalogRepositoryPort
    clock: ClockPort
    extraction_port: ExtractionPort
    messaging_port: Optional[MessagingPort] = None
    media_storage: Optional[MediaStoragePort] = None
    engine: Optional[AsyncEngine] = None
    http_client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        """HTTP 클라이언트와 DB 엔진 정리"""
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()


async def build_container(settings: Settings, overrides: Optional[Dict[str, Any]] = None) -> ServiceContainer:
    """설정으로 어댑터 구성 (overrides로 테스트용 구현체 주입)"""
    from catalog_sync.adapters.persistence.models import create_engine_from_settings, init_models
    from catalog_sync.adapters.persistence.repositories import SqlAlchemyCatalogRepository
    from catalog_sync.adapters.persistence.clock_adapter import ClockAdapter
    from catalog_sync.adapters.extraction.openai_adapter import OpenAIExtractionAdapter
    from catalog_sync.adapters.messaging.whatsapp_adapter import WhatsAppMessagingAdapter
    from catalog_sync.adapters.storage.object_storage import ObjectStorageAdapter

    overrides = overrides or {}

    engine = create_engine_from_settings(settings)
    if settings.auto_create_tables:
        try:
            await init_models(engine)
        except Exception as e:
            logger.error(f"데이터베이스 테이블 생성 실패: {e}")
            await engine.dispose()
            raise
        logger.info("데이터베이스 테이블 확인 완료")

    http_client = httpx.AsyncClient(timeout=settings.request_timeout)

    media_storage = None
    if settings.storage_url and settings.storage_service_key:
        media_storage = ObjectStorageAdapter(
            http_client,
            storage_url=settings.storage_url,
            service_key=settings.storage_service_key,
            bucket=settings.storage_bucket
        )
    else:
        logger.warning("이미지 저장소 설정이 없어 첨부 이미지는 저장하지 않음")

    components = {
        'repository': SqlAlchemyCatalogRepository(engine),
        'clock': ClockAdapter(),
        'extraction_port': OpenAIExtractionAdapter(
            http_client,
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_api_base_url,
            timeout=settings.extraction_timeout
        ),
        'messaging_port': WhatsAppMessagingAdapter(
            http_client,
            token=settings.whatsapp_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_url=settings.whatsapp_api_url
        ),
        'media_storage': media_storage,
    }
    components.update(overrides)

    return ServiceContainer(settings=settings, engine=engine, http_client=http_client, **components)


def get_container(request: Request) -> ServiceContainer:
    """애플리케이션 상태에서 컨테이너 조회"""
    return request.app.state.container


# 유즈케이스 팩토리
def get_sync_catalog_usecase(container: ServiceContainer = Depends(get_container)) -> SyncCatalogUseCase:
    """카탈로그 동기화 유즈케이스"""
    settings = container.settings
    return SyncCatalogUseCase(
        repository=container.repository,
        clock=container.clock,
        normalizer=PayloadNormalizer(build_channel_policies(settings)),
        reconciler=ListingReconciler(container.repository, container.clock),
        extractor=ExtractionAdapter(container.extraction_port),
        settings=settings,
        messaging=container.messaging_port,
        media_storage=container.media_storage
    )
