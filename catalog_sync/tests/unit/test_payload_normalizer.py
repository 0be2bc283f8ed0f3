"""페이로드 분류/표준화 단위 테스트"""
import pytest

from catalog_sync.core.entities.product import ListingStatus, SourceChannel
from catalog_sync.core.exceptions import ValidationError
from catalog_sync.core.usecases.normalize_payload import (
    PayloadNormalizer, PayloadShape, PRODUCTS_REQUIRED_MESSAGE, build_channel_policies
)
from catalog_sync.shared.config import Settings


@pytest.fixture
def normalizer():
    return PayloadNormalizer(build_channel_policies(Settings()))


def platform_product(**overrides):
    product = {
        "id": 632910392,
        "title": "IPod Nano - 8GB",
        "body_html": "<p>It's the small iPod</p>",
        "vendor": "Apple",
        "product_type": "Cult Products",
        "handle": "ipod-nano",
        "status": "active",
        "tags": "Emotive, Flash Memory, MP3",
        "variants": [
            {"price": "199.00", "inventory_quantity": 10},
            {"price": "249.00", "inventory_quantity": 3},
        ],
        "images": [{"src": "https://cdn.test/ipod.png"}, {"alt": "no src"}],
    }
    product.update(overrides)
    return product


class TestClassify:
    """본문 형태 판별 테스트"""

    def test_products_field_is_native_batch(self):
        assert PayloadNormalizer.classify({"products": []}) == PayloadShape.NATIVE_BATCH

    def test_top_level_list_is_native_batch(self):
        assert PayloadNormalizer.classify([{"external_id": "p1"}]) == PayloadShape.NATIVE_BATCH

    def test_title_and_variants_is_platform_product(self):
        assert PayloadNormalizer.classify(platform_product()) == PayloadShape.PLATFORM_PRODUCT

    def test_other_bodies_are_unrecognized(self):
        assert PayloadNormalizer.classify({"title": "x"}) == PayloadShape.UNRECOGNIZED
        assert PayloadNormalizer.classify({"products": "nope"}) == PayloadShape.UNRECOGNIZED
        assert PayloadNormalizer.classify("text") == PayloadShape.UNRECOGNIZED


class TestNativeBatch:
    """native-batch 표준화 테스트"""

    def test_push_defaults(self, normalizer):
        """설명/가격/카테고리/재고 기본값"""
        payload = normalizer.normalize({"products": [{"external_id": "p1", "title": "Chair"}]}, SourceChannel.PUSH)
        product = payload.products[0]

        assert product.description == ""
        assert product.price == 0
        assert product.category == "Uncategorized"
        assert product.inventory_count == 1
        assert product.status == ListingStatus.ACTIVE

    def test_webhook_inventory_default_differs_from_push(self, normalizer):
        body = {"products": [{"external_id": "p1", "title": "Chair"}]}

        push = normalizer.normalize(body, SourceChannel.PUSH).products[0]
        webhook = normalizer.normalize(body, SourceChannel.PLATFORM_WEBHOOK).products[0]

        assert push.inventory_count == 1
        assert webhook.inventory_count == 0

    def test_numeric_external_id_is_stringified(self, normalizer):
        payload = normalizer.normalize({"products": [{"external_id": 42, "title": "Desk"}]}, SourceChannel.PUSH)
        assert payload.products[0].external_id == "42"

    def test_invalid_fields_become_item_errors(self, normalizer):
        body = {"products": [
            {"external_id": "p1", "title": "Chair", "price": -5},
            {"external_id": "p2", "title": "Desk", "status": "archived"},
            "not an object",
            {"external_id": "p4", "title": "Lamp", "inventory_count": 2},
        ]}
        payload = normalizer.normalize(body, SourceChannel.PUSH)

        assert [item.error is not None for item in payload.items] == [True, True, True, False]
        assert payload.items[0].reference == "p1"
        assert payload.items[2].reference == "#2"
        assert payload.items[3].product.inventory_count == 2

    def test_empty_products_array_is_valid(self, normalizer):
        payload = normalizer.normalize({"products": []}, SourceChannel.PUSH)
        assert payload.shape == PayloadShape.NATIVE_BATCH
        assert payload.items == []

    def test_push_requires_products_array(self, normalizer):
        with pytest.raises(ValidationError) as exc_info:
            normalizer.normalize({"products": {"external_id": "p1"}}, SourceChannel.PUSH)
        assert exc_info.value.message == PRODUCTS_REQUIRED_MESSAGE

    def test_webhook_unrecognized_body_is_noop(self, normalizer):
        payload = normalizer.normalize({"id": 1, "topic": "ping"}, SourceChannel.PLATFORM_WEBHOOK)
        assert payload.shape == PayloadShape.UNRECOGNIZED
        assert payload.items == []


class TestPlatformProduct:
    """외부 플랫폼 상품 표준화 테스트"""

    def test_single_product_synthesized(self, normalizer):
        payload = normalizer.normalize(platform_product(), SourceChannel.PLATFORM_WEBHOOK)

        assert payload.shape == PayloadShape.PLATFORM_PRODUCT
        assert len(payload.products) == 1

        product = payload.products[0]
        assert product.external_id == "632910392"
        assert product.price == 199.0
        assert product.inventory_count == 10
        assert product.category == "Cult Products"
        assert product.images == ["https://cdn.test/ipod.png"]
        assert product.tags == ["Emotive", "Flash Memory", "MP3"]
        assert product.metadata == {"vendor": "Apple", "shopify_handle": "ipod-nano"}

    def test_invalid_price_and_missing_quantity_default_to_zero(self, normalizer):
        product = normalizer.normalize_platform_product(
            platform_product(variants=[{"price": "free"}]), SourceChannel.PLATFORM_WEBHOOK
        )
        assert product.price == 0
        assert product.inventory_count == 0

    def test_non_list_images_are_ignored(self, normalizer):
        """images가 배열이 아니면 빈 목록"""
        payload = normalizer.normalize(platform_product(images=5), SourceChannel.PLATFORM_WEBHOOK)

        assert len(payload.products) == 1
        assert payload.products[0].images == []
        assert payload.products[0].external_id == "632910392"

    def test_status_from_platform_or_channel_default(self, normalizer):
        draft = normalizer.normalize_platform_product(platform_product(status="draft"), SourceChannel.PLATFORM_WEBHOOK)
        archived = normalizer.normalize_platform_product(platform_product(status="archived"), SourceChannel.PLATFORM_WEBHOOK)
        missing = normalizer.normalize_platform_product(platform_product(status=None), SourceChannel.PLATFORM_WEBHOOK)

        assert draft.status == ListingStatus.DRAFT
        assert archived.status == ListingStatus.INACTIVE
        assert missing.status == ListingStatus.ACTIVE


class TestExtracted:
    """AI 추출 결과 표준화 테스트"""

    def test_message_id_used_when_no_external_id(self, normalizer):
        product = normalizer.normalize_extracted({"title": "Bag", "price": 15000}, "wamid.1", ["https://img/1.jpg"])

        assert product.external_id == "wamid.1"
        assert product.currency == "NGN"
        assert product.images == ["https://img/1.jpg"]
        assert product.source_channel == SourceChannel.CONVERSATIONAL

    def test_title_truncated_and_negative_price_dropped(self, normalizer):
        product = normalizer.normalize_extracted({"title": "x" * 300, "price": -1}, "wamid.2")

        assert len(product.title) == 200
        assert product.price is None

    def test_images_deduplicated_in_order(self, normalizer):
        product = normalizer.normalize_extracted(
            {"title": "Bag", "images": ["a", "b"]}, "wamid.3", ["b", "c"]
        )
        assert product.images == ["a", "b", "c"]
