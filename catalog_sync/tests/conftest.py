"""공통 테스트 픽스처"""
import pytest
import pytest_asyncio

from catalog_sync.adapters.persistence.models import create_engine_from_settings, init_models
from catalog_sync.adapters.persistence.repositories import SqlAlchemyCatalogRepository
from catalog_sync.core.usecases.extract_product import ExtractionAdapter
from catalog_sync.core.usecases.normalize_payload import PayloadNormalizer, build_channel_policies
from catalog_sync.core.usecases.reconcile_listing import ListingReconciler
from catalog_sync.core.usecases.sync_catalog import SyncCatalogUseCase
from catalog_sync.shared.config import Settings
from catalog_sync.tests.fakes import (
    FixedClock, InMemoryCatalogRepository, FakeExtractionPort, FakeMessagingPort, FakeMediaStorage
)


@pytest.fixture
def test_settings(tmp_path):
    """테스트용 설정 (임시 SQLite 파일)"""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'catalog_sync_test.db'}",
        meta_verify_token="verify-me",
        catalog_name="testmarket",
        vendor_portal_url="https://vendors.test/profile"
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def memory_repository():
    return InMemoryCatalogRepository()


@pytest.fixture
def extraction_port():
    return FakeExtractionPort(result={"title": "Red leather bag", "price": 15000, "category": "Bags"})


@pytest.fixture
def messaging_port():
    return FakeMessagingPort()


@pytest.fixture
def media_storage():
    return FakeMediaStorage()


@pytest.fixture
def sync_usecase(memory_repository, clock, extraction_port, messaging_port, media_storage, test_settings):
    """메모리 리포지토리 기반 오케스트레이터"""
    return SyncCatalogUseCase(
        repository=memory_repository,
        clock=clock,
        normalizer=PayloadNormalizer(build_channel_policies(test_settings)),
        reconciler=ListingReconciler(memory_repository, clock),
        extractor=ExtractionAdapter(extraction_port),
        settings=test_settings,
        messaging=messaging_port,
        media_storage=media_storage
    )


@pytest_asyncio.fixture
async def sql_repository(test_settings):
    """임시 SQLite 리포지토리"""
    engine = create_engine_from_settings(test_settings)
    await init_models(engine)

    yield SqlAlchemyCatalogRepository(engine)

    await engine.dispose()
