"""벤더 식별 유즈케이스

요청 하나를 벤더 식별자로 매핑한다. 전략은 순서대로 한 번씩만 시도되며
NOT_APPLICABLE이 아닌 첫 결과가 최종 결과가 된다.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from catalog_sync.core.entities.inbound import InboundRequest, MessageEnvelope, normalize_msisdn
from catalog_sync.core.entities.product import SourceChannel
from catalog_sync.core.entities.vendor import VendorIdentity, LookupKeyType
from catalog_sync.core.exceptions import AuthError
from catalog_sync.core.ports.repo_port import CatalogRepositoryPort
from catalog_sync.core.ports.clock_port import ClockPort
from catalog_sync.shared.logging import get_logger

logger = get_logger(__name__)

# 거부 사유
INVALID_CREDENTIAL = "invalid_credential"
VENDOR_UNMAPPED = "vendor_unmapped"
MISSING_VENDOR_IDENTIFIER = "missing_vendor_identifier"


class NotApplicable:
    """이 요청에는 해당 전략을 적용할 수 없음"""

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = NotApplicable()


@dataclass(frozen=True)
class Rejection:
    """전략이 요청을 거부함"""
    reason: str


Resolution = Union[VendorIdentity, NotApplicable, Rejection]


class ResolverStrategy(ABC):
    """벤더 식별 전략 인터페이스"""

    name: str = "strategy"

    @abstractmethod
    async def attempt(self, request: InboundRequest) -> Resolution:
        pass


class BearerCredentialStrategy(ResolverStrategy):
    """Bearer API 키 인증"""

    name = "api_credential"

    def __init__(self, repository: CatalogRepositoryPort, clock: ClockPort):
        self.repository = repository
        self.clock = clock

    async def attempt(self, request: InboundRequest) -> Resolution:
        token = request.bearer_token()
        if not token:
            return NOT_APPLICABLE

        credential = await self.repository.find_active_credential(token)
        if credential is None or not credential.active:
            return Rejection(INVALID_CREDENTIAL)

        await self._touch(credential.id)

        return VendorIdentity(
            vendor_id=credential.vendor_id,
            strategy=self.name,
            credential_id=credential.id
        )

    async def _touch(self, credential_id: str) -> None:
        """last_used_at 갱신 (실패해도 요청은 계속 진행)"""
        try:
            await self.repository.touch_credential(credential_id, self.clock.now())
        except Exception as e:
            logger.warning(f"API 키 사용 시각 갱신 실패 {credential_id}: {e}")


class StoreMappingStrategy(ResolverStrategy):
    """스토어 이름 또는 도메인으로 벤더 매핑 조회"""

    name = "store_mapping"

    NAME_FIELDS = ("store_name", "vendor_name")
    DOMAIN_HEADERS = ("x-shopify-shop-domain",)
    DOMAIN_FIELDS = ("shop_domain", "domain")

    def __init__(self, repository: CatalogRepositoryPort):
        self.repository = repository

    def find_identifier(self, request: InboundRequest) -> Optional[Tuple[LookupKeyType, str]]:
        """이름 우선, 없으면 도메인"""
        body = request.body if isinstance(request.body, dict) else {}

        for field_name in self.NAME_FIELDS:
            value = body.get(field_name)
            if isinstance(value, str) and value.strip():
                return LookupKeyType.NAME, value.strip()

        domains = [request.header(name) for name in self.DOMAIN_HEADERS]
        domains += [body.get(field_name) for field_name in self.DOMAIN_FIELDS]
        for value in domains:
            if isinstance(value, str) and value.strip():
                return LookupKeyType.DOMAIN, value.strip().lower()

        return None

    async def attempt(self, request: InboundRequest) -> Resolution:
        identifier = self.find_identifier(request)
        if identifier is None:
            return NOT_APPLICABLE

        key_type, lookup_key = identifier
        mapping = await self.repository.find_store_mapping(key_type, lookup_key)
        if mapping is None:
            logger.info(f"매핑되지 않은 스토어: {key_type.value}={lookup_key}")
            return Rejection(VENDOR_UNMAPPED)

        return VendorIdentity(vendor_id=mapping.vendor_id, strategy=f"{self.name}:{key_type.value}")


class SenderPhoneStrategy(ResolverStrategy):
    """메신저 발신자 전화번호로 벤더 매핑 조회"""

    name = "sender_phone"

    def __init__(self, repository: CatalogRepositoryPort):
        self.repository = repository

    async def attempt(self, request: InboundRequest) -> Resolution:
        envelope = MessageEnvelope.from_payload(request.body)
        msisdn = normalize_msisdn(envelope.sender) if envelope else ""
        if not msisdn:
            return NOT_APPLICABLE

        mapping = await self.repository.find_store_mapping(LookupKeyType.PHONE, msisdn)
        if mapping is None:
            return Rejection(VENDOR_UNMAPPED)

        return VendorIdentity(vendor_id=mapping.vendor_id, strategy=self.name)


class VendorResolver:
    """우선순위 전략 체인"""

    def __init__(self, strategies: List[ResolverStrategy]):
        self.strategies = strategies

    @classmethod
    def for_channel(
        cls,
        channel: SourceChannel,
        repository: CatalogRepositoryPort,
        clock: ClockPort
    ) -> "VendorResolver":
        """채널별 전략 구성"""
        if channel == SourceChannel.CONVERSATIONAL:
            return cls([SenderPhoneStrategy(repository)])
        return cls([
            BearerCredentialStrategy(repository, clock),
            StoreMappingStrategy(repository),
        ])

    async def resolve(self, request: InboundRequest) -> VendorIdentity:
        """벤더 식별 (실패시 AuthError)"""
        for strategy in self.strategies:
            result = await strategy.attempt(request)

            if isinstance(result, NotApplicable):
                continue
            if isinstance(result, Rejection):
                logger.info(f"벤더 식별 거부 ({strategy.name}): {result.reason}")
                raise AuthError(result.reason)
            return result

        raise AuthError(MISSING_VENDOR_IDENTIFIER)
