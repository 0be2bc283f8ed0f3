"""페이로드 분류 및 표준화 유즈케이스

원본 요청 본문의 형태를 판별하고 CanonicalProduct 목록으로 변환한다.
채널별 기본값(상태, 재고, 카테고리, 통화)은 CHANNEL_POLICIES 조회 테이블에서 가져온다.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import math

from catalog_sync.core.entities.product import CanonicalProduct, ListingStatus, SourceChannel
from catalog_sync.core.exceptions import ValidationError
from catalog_sync.shared.config import Settings, get_settings
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)

PRODUCTS_REQUIRED_MESSAGE = "Invalid request body: products array required"
UNTITLED_PRODUCT = "Untitled product"
MAX_TITLE_LENGTH = 200


class PayloadShape(Enum):
    """요청 본문 형태"""
    NATIVE_BATCH = "native_batch"          # {"products": [...]}
    PLATFORM_PRODUCT = "platform_product"  # 외부 플랫폼 단일 상품 (title + variants)
    CONVERSATIONAL = "conversational"      # 메신저 추출 결과
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ChannelPolicy:
    """채널별 표준화 정책"""
    default_status: ListingStatus
    default_inventory: int
    default_category: Optional[str]
    default_currency: Optional[str] = None
    requires_products_field: bool = False


def build_channel_policies(settings: Settings) -> Dict[SourceChannel, ChannelPolicy]:
    """설정값으로 채널 정책 테이블 생성"""
    default_status = ListingStatus.parse(settings.default_status) or ListingStatus.ACTIVE

    return {
        # API 키로 직접 전송: 재고 미기재시 1개로 간주
        SourceChannel.PUSH: ChannelPolicy(
            default_status=default_status,
            default_inventory=settings.push_default_inventory,
            default_category=settings.default_category,
            requires_products_field=True
        ),
        # 플랫폼 웹훅: 재고 미기재시 0개
        SourceChannel.PLATFORM_WEBHOOK: ChannelPolicy(
            default_status=default_status,
            default_inventory=settings.webhook_default_inventory,
            default_category=settings.default_category
        ),
        SourceChannel.CONVERSATIONAL: ChannelPolicy(
            default_status=default_status,
            default_inventory=settings.push_default_inventory,
            default_category=None,
            default_currency=settings.conversational_default_currency
        ),
    }


CHANNEL_POLICIES = build_channel_policies(get_settings())


@dataclass
class NormalizedItem:
    """표준화된 개별 항목 (변환 실패시 error)"""
    index: int
    product: Optional[CanonicalProduct] = None
    error: Optional[str] = None
    external_id: Optional[str] = None

    @property
    def reference(self) -> str:
        if self.product is not None:
            return self.product.reference(self.index)
        return self.external_id or f"#{self.index}"


@dataclass
class NormalizedPayload:
    """표준화 결과"""
    shape: PayloadShape
    items: List[NormalizedItem] = field(default_factory=list)

    @property
    def products(self) -> List[CanonicalProduct]:
        return [item.product for item in self.items if item.product is not None]


class PayloadNormalizer:
    """페이로드 분류기 및 표준화기"""

    def __init__(self, policies: Optional[Dict[SourceChannel, ChannelPolicy]] = None):
        self.policies = policies or CHANNEL_POLICIES

    def policy_for(self, channel: SourceChannel) -> ChannelPolicy:
        return self.policies[channel]

    @staticmethod
    def classify(body: Any) -> PayloadShape:
        """본문 형태 판별"""
        if isinstance(body, list):
            return PayloadShape.NATIVE_BATCH

        if not isinstance(body, dict):
            return PayloadShape.UNRECOGNIZED

        if "title" in body and isinstance(body.get("variants"), list):
            return PayloadShape.PLATFORM_PRODUCT

        if isinstance(body.get("products"), list):
            return PayloadShape.NATIVE_BATCH

        return PayloadShape.UNRECOGNIZED

    def normalize(self, body: Any, channel: SourceChannel) -> NormalizedPayload:
        """본문을 CanonicalProduct 목록으로 변환

        products 필드를 요구하는 채널에서 해당 필드가 없거나 배열이 아니면 ValidationError.
        그 외 인식할 수 없는 본문은 빈 결과(no-op)로 처리한다.
        """
        policy = self.policy_for(channel)
        shape = self.classify(body)

        if shape == PayloadShape.PLATFORM_PRODUCT:
            product = self.normalize_platform_product(body, channel)
            return NormalizedPayload(shape=shape, items=[NormalizedItem(index=0, product=product)])

        if shape == PayloadShape.NATIVE_BATCH:
            raw_products = body if isinstance(body, list) else body["products"]
            items = [
                self.normalize_batch_item(raw, index, channel)
                for index, raw in enumerate(raw_products)
            ]
            return NormalizedPayload(shape=shape, items=items)

        if policy.requires_products_field:
            raise ValidationError(PRODUCTS_REQUIRED_MESSAGE, field="products")

        logger.info(f"인식할 수 없는 페이로드 ({channel.value}), 처리할 상품 없음")
        return NormalizedPayload(shape=PayloadShape.UNRECOGNIZED)

    def normalize_batch_item(self, raw: Any, index: int, channel: SourceChannel) -> NormalizedItem:
        """native-batch 항목 표준화 (관대한 기본값 적용)"""
        policy = self.policy_for(channel)

        if not isinstance(raw, dict):
            return NormalizedItem(index=index, error="product entry must be an object")

        external_id = _to_identifier(raw.get("external_id"))

        try:
            price = _parse_price(raw.get("price"))
            inventory_count = _parse_inventory(raw.get("inventory_count"), policy.default_inventory)
            status = _parse_status(raw.get("status"), policy.default_status)
        except ValueError as e:
            return NormalizedItem(index=index, external_id=external_id, error=str(e))

        product = CanonicalProduct(
            external_id=external_id,
            title=_to_text(raw.get("title")),
            source_channel=channel,
            description=_to_text(raw.get("description")) or "",
            price=0.0 if price is None else price,
            currency=_to_text(raw.get("currency")) or policy.default_currency,
            category=_to_text(raw.get("category")) or policy.default_category,
            inventory_count=inventory_count,
            status=status,
            tags=_string_list(raw.get("tags")),
            images=_string_list(raw.get("images")),
            location=_to_text(raw.get("location")),
            metadata=raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
        )
        return NormalizedItem(index=index, product=product)

    def normalize_platform_product(self, raw: Dict[str, Any], channel: SourceChannel) -> CanonicalProduct:
        """외부 플랫폼(Shopify 형식) 단일 상품 변환"""
        policy = self.policy_for(channel)
        variants = raw.get("variants") or []
        first_variant = variants[0] if variants and isinstance(variants[0], dict) else {}

        try:
            price = _parse_price(first_variant.get("price"))
        except ValueError:
            price = None

        try:
            inventory_count = _parse_inventory(first_variant.get("inventory_quantity"), 0)
        except ValueError:
            # 플랫폼은 음수 재고(백오더)를 허용하므로 0으로 맞춤
            inventory_count = 0

        images = []
        raw_images = raw.get("images")
        for image in raw_images if isinstance(raw_images, list) else []:
            src = image.get("src") if isinstance(image, dict) else None
            if isinstance(src, str) and src:
                images.append(src)

        tags = raw.get("tags")
        if isinstance(tags, str):
            tags = [tag.strip() for tag in tags.split(",") if tag.strip()]

        return CanonicalProduct(
            external_id=_to_identifier(raw.get("id")),
            title=_to_text(raw.get("title")),
            source_channel=channel,
            description=_to_text(raw.get("body_html")) or "",
            price=price or 0.0,
            currency=_to_text(raw.get("currency")) or policy.default_currency,
            category=_to_text(raw.get("product_type")) or policy.default_category,
            inventory_count=inventory_count,
            status=_platform_status(raw.get("status"), policy.default_status),
            tags=_string_list(tags),
            images=images,
            metadata={
                'vendor': _to_text(raw.get("vendor")) or "Unknown",
                'shopify_handle': raw.get("handle"),
            }
        )

    def normalize_extracted(
        self,
        fragment: Dict[str, Any],
        message_id: str,
        media_urls: Optional[List[str]] = None,
        channel: SourceChannel = SourceChannel.CONVERSATIONAL
    ) -> CanonicalProduct:
        """AI 추출 결과를 CanonicalProduct로 변환"""
        policy = self.policy_for(channel)

        title = (_to_text(fragment.get("title")) or UNTITLED_PRODUCT)[:MAX_TITLE_LENGTH]

        price = fragment.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0 or not math.isfinite(price):
            price = None

        # 추출된 이미지 + 업로드된 미디어, 순서 유지 중복 제거
        images = list(dict.fromkeys(_string_list(fragment.get("images")) + list(media_urls or [])))

        return CanonicalProduct(
            external_id=_to_identifier(fragment.get("external_id")) or _to_identifier(message_id),
            title=title,
            source_channel=channel,
            description=_to_text(fragment.get("description")),
            price=float(price) if price is not None else None,
            currency=_to_text(fragment.get("currency")) or policy.default_currency,
            category=_to_text(fragment.get("category")) or policy.default_category,
            inventory_count=policy.default_inventory,
            status=ListingStatus.parse(fragment.get("status")) or policy.default_status,
            tags=_string_list(fragment.get("tags")),
            images=images,
            location=_to_text(fragment.get("location")),
            metadata={'message_id': message_id}
        )


def _to_identifier(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        text = str(value).strip()
        return text or None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return None


def _to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _parse_price(value: Any) -> Optional[float]:
    """가격 파싱 (없으면 None, 잘못된 값이면 ValueError)"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid price: {value!r}")

    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid price: {value!r}")

    if not math.isfinite(price) or price < 0:
        raise ValueError(f"invalid price: {value!r}")
    return price


def _parse_inventory(value: Any, default: int) -> int:
    """재고 수량 파싱 (음이 아닌 정수)"""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"invalid inventory_count: {value!r}")

    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())

    if not isinstance(value, int) or value < 0:
        raise ValueError(f"invalid inventory_count: {value!r}")
    return value


def _parse_status(value: Any, default: ListingStatus) -> ListingStatus:
    if value is None:
        return default

    status = ListingStatus.parse(value)
    if status is None:
        allowed = ", ".join(ListingStatus.values())
        raise ValueError(f"invalid status: {value!r} (allowed: {allowed})")
    return status


def _platform_status(value: Any, default: ListingStatus) -> ListingStatus:
    """플랫폼 상태 변환 (archived -> inactive, 알 수 없는 값은 채널 기본값)"""
    if isinstance(value, str) and value.strip().lower() == "archived":
        return ListingStatus.INACTIVE
    return ListingStatus.parse(value) or default
