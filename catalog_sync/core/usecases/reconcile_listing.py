"""리스팅 업서트 유즈케이스"""
from catalog_sync.core.entities.product import CanonicalProduct, Listing, REQUIRED_FIELDS_MESSAGE
from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.repo_port import CatalogRepositoryPort
from catalog_sync.core.ports.clock_port import ClockPort
from catalog_sync.shared.result import Result, Success, Failure
from catalog_sync.shared.logging import get_logger, log_product_sync

logger = get_logger(__name__)


class ListingReconciler:
    """(vendor_id, external_id) 기준 멱등 업서트

    같은 키로 다시 들어온 상품은 기존 리스팅 전체를 덮어쓴다 (필드 병합 없음).
    실패는 예외가 아닌 Failure로 반환하여 배치의 다른 항목에 영향을 주지 않는다.
    """

    def __init__(self, repository: CatalogRepositoryPort, clock: ClockPort):
        self.repository = repository
        self.clock = clock

    async def reconcile(self, vendor_id: str, product: CanonicalProduct) -> "Result[Listing]":
        if not product.has_required_fields():
            return Failure(REQUIRED_FIELDS_MESSAGE)

        try:
            listing = await self.repository.upsert_listing(vendor_id, product, self.clock.now())
        except UpstreamError as e:
            logger.error(f"리스팅 저장 실패 {vendor_id}/{product.external_id}: {e}")
            return Failure(f"failed to sync: {e.message}")
        except Exception as e:
            logger.error(f"리스팅 저장 중 오류 {vendor_id}/{product.external_id}: {e}", exc_info=True)
            return Failure("failed to sync: unexpected error")

        log_product_sync(logger, "upserted", vendor_id, product.external_id, {
            'listing_id': listing.id,
            'channel': product.source_channel.value,
        })
        return Success(listing)
