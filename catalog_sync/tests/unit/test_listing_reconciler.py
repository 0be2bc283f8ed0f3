"""리스팅 업서트 단위 테스트"""
import pytest

from catalog_sync.core.entities.product import CanonicalProduct, ListingStatus, SourceChannel, REQUIRED_FIELDS_MESSAGE
from catalog_sync.core.usecases.reconcile_listing import ListingReconciler
from catalog_sync.tests.fakes import FixedClock


def chair(**overrides):
    fields = dict(external_id="p1", title="Chair", source_channel=SourceChannel.PUSH, price=49.99)
    fields.update(overrides)
    return CanonicalProduct(**fields)


class TestListingReconcilerInMemory:
    """메모리 리포지토리 기반 테스트"""

    @pytest.mark.asyncio
    async def test_missing_required_fields_is_failure(self, memory_repository, clock):
        result = await ListingReconciler(memory_repository, clock).reconcile("V", chair(title=None))

        assert result.is_failure()
        assert result.get_error() == REQUIRED_FIELDS_MESSAGE
        assert memory_repository.listings == {}

    @pytest.mark.asyncio
    async def test_repository_failure_is_contained(self, memory_repository, clock):
        memory_repository.fail_upsert_for.add("p1")

        result = await ListingReconciler(memory_repository, clock).reconcile("V", chair())

        assert result.is_failure()
        assert result.get_error().startswith("failed to sync")


class TestListingReconcilerSql:
    """SQLite 리포지토리 기반 멱등성 테스트"""

    @pytest.mark.asyncio
    async def test_first_sync_creates_listing(self, sql_repository):
        result = await ListingReconciler(sql_repository, FixedClock()).reconcile("V", chair(tags=["wood"]))

        assert result.is_success()
        listing = await sql_repository.get_listing("V", "p1")
        assert listing.title == "Chair"
        assert listing.price == 49.99
        assert listing.tags == ["wood"]
        assert listing.is_visible is True

    @pytest.mark.asyncio
    async def test_resync_replaces_whole_record(self, sql_repository):
        clock = FixedClock(step=60)
        reconciler = ListingReconciler(sql_repository, clock)

        first = (await reconciler.reconcile("V", chair(description="old", tags=["a"]))).get_value()
        second = (await reconciler.reconcile("V", chair(
            title="Armchair", price=59.0, status=ListingStatus.DRAFT
        ))).get_value()

        assert second.id == first.id
        assert second.title == "Armchair"
        assert second.price == 59.0
        assert second.description is None
        assert second.tags == []
        assert second.status == ListingStatus.DRAFT
        assert second.is_visible is False
        assert second.synced_at > first.synced_at

    @pytest.mark.asyncio
    async def test_same_external_id_for_other_vendor_is_separate(self, sql_repository, clock):
        reconciler = ListingReconciler(sql_repository, clock)

        await reconciler.reconcile("V1", chair())
        await reconciler.reconcile("V2", chair(title="Other chair"))

        assert (await sql_repository.get_listing("V1", "p1")).title == "Chair"
        assert (await sql_repository.get_listing("V2", "p1")).title == "Other chair"
