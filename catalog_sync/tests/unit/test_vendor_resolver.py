"""벤더 식별 단위 테스트"""
import pytest

from catalog_sync.core.entities.inbound import InboundRequest
from catalog_sync.core.entities.product import SourceChannel
from catalog_sync.core.entities.vendor import LookupKeyType
from catalog_sync.core.exceptions import AuthError
from catalog_sync.core.usecases.resolve_vendor import (
    VendorResolver, BearerCredentialStrategy, StoreMappingStrategy, NOT_APPLICABLE, Rejection,
    INVALID_CREDENTIAL, VENDOR_UNMAPPED, MISSING_VENDOR_IDENTIFIER
)
from catalog_sync.tests.fakes import messaging_payload


def make_request(token=None, body=None, headers=None):
    request_headers = dict(headers or {})
    if token is not None:
        request_headers["Authorization"] = f"Bearer {token}"
    return InboundRequest(method="POST", path="/api/v1/catalog/sync", headers=request_headers, body=body)


@pytest.fixture
def resolver(memory_repository, clock):
    return VendorResolver.for_channel(SourceChannel.PUSH, memory_repository, clock)


class TestBearerCredential:
    """API 키 인증 테스트"""

    @pytest.mark.asyncio
    async def test_valid_credential_resolves_vendor(self, resolver, memory_repository):
        credential = memory_repository.add_credential("vendor-1", "key-1")

        identity = await resolver.resolve(make_request(token="key-1"))

        assert identity.vendor_id == "vendor-1"
        assert identity.credential_id == credential.id
        assert credential.last_used_at is not None

    @pytest.mark.asyncio
    async def test_deactivated_credential_is_rejected(self, resolver, memory_repository):
        credential = memory_repository.add_credential("vendor-1", "key-1")
        assert (await resolver.resolve(make_request(token="key-1"))).vendor_id == "vendor-1"

        credential.active = False

        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request(token="key-1"))
        assert exc_info.value.reason == INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_unknown_credential_does_not_fall_back_to_mapping(self, resolver, memory_repository):
        """토큰이 있으면 스토어 매핑을 시도하지 않음"""
        memory_repository.add_mapping(LookupKeyType.NAME, "Acme", "vendor-2")

        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request(token="wrong", body={"store_name": "Acme"}))
        assert exc_info.value.reason == INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_touch_failure_does_not_fail_request(self, resolver, memory_repository):
        memory_repository.add_credential("vendor-1", "key-1")
        memory_repository.fail_touch = True

        identity = await resolver.resolve(make_request(token="key-1"))
        assert identity.vendor_id == "vendor-1"

    @pytest.mark.asyncio
    async def test_missing_token_is_not_applicable(self, memory_repository, clock):
        strategy = BearerCredentialStrategy(memory_repository, clock)
        assert await strategy.attempt(make_request()) is NOT_APPLICABLE


class TestStoreMapping:
    """스토어 매핑 테스트"""

    @pytest.mark.asyncio
    async def test_mapped_store_name_resolves(self, resolver, memory_repository):
        memory_repository.add_mapping(LookupKeyType.NAME, "Acme Store", "vendor-2")

        identity = await resolver.resolve(make_request(body={"store_name": "Acme Store", "products": []}))
        assert identity.vendor_id == "vendor-2"
        assert identity.credential_id is None

    @pytest.mark.asyncio
    async def test_unmapped_store_is_rejected(self, resolver):
        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request(body={"vendor_name": "Nobody"}))
        assert exc_info.value.reason == VENDOR_UNMAPPED

    @pytest.mark.asyncio
    async def test_domain_header_is_case_insensitive(self, resolver, memory_repository):
        memory_repository.add_mapping(LookupKeyType.DOMAIN, "acme.myshopify.com", "vendor-3")

        request = make_request(body={"title": "x"}, headers={"X-Shopify-Shop-Domain": "ACME.myshopify.com"})
        assert (await resolver.resolve(request)).vendor_id == "vendor-3"

    @pytest.mark.asyncio
    async def test_name_preferred_over_domain(self, memory_repository):
        strategy = StoreMappingStrategy(memory_repository)
        request = make_request(body={"store_name": "Acme", "shop_domain": "acme.test"})

        assert strategy.find_identifier(request) == (LookupKeyType.NAME, "Acme")

    @pytest.mark.asyncio
    async def test_no_identifier_is_rejected(self, resolver):
        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request(body={"products": []}))
        assert exc_info.value.reason == MISSING_VENDOR_IDENTIFIER


class TestSenderPhone:
    """메신저 발신자 매핑 테스트"""

    @pytest.mark.asyncio
    async def test_linked_sender_resolves(self, memory_repository, clock):
        memory_repository.add_mapping(LookupKeyType.PHONE, "+234 801 234 5678", "vendor-4")
        resolver = VendorResolver.for_channel(SourceChannel.CONVERSATIONAL, memory_repository, clock)

        identity = await resolver.resolve(make_request(body=messaging_payload()))
        assert identity.vendor_id == "vendor-4"

    @pytest.mark.asyncio
    async def test_unlinked_sender_is_rejected(self, memory_repository, clock):
        resolver = VendorResolver.for_channel(SourceChannel.CONVERSATIONAL, memory_repository, clock)

        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request(body=messaging_payload()))
        assert exc_info.value.reason == VENDOR_UNMAPPED

    @pytest.mark.asyncio
    async def test_strategy_rejection_stops_chain(self, memory_repository, clock):
        """거부 결과가 나오면 이후 전략은 시도하지 않음"""

        class Rejecting(BearerCredentialStrategy):
            async def attempt(self, request):
                return Rejection("custom_reason")

        class Exploding(StoreMappingStrategy):
            async def attempt(self, request):
                raise AssertionError("should not be called")

        resolver = VendorResolver([Rejecting(memory_repository, clock), Exploding(memory_repository)])
        with pytest.raises(AuthError) as exc_info:
            await resolver.resolve(make_request())
        assert exc_info.value.reason == "custom_reason"
