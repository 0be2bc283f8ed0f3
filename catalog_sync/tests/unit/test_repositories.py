"""SQLAlchemy 리포지토리 단위 테스트"""
from datetime import datetime, timezone
import pytest

from catalog_sync.core.entities.product import SourceChannel
from catalog_sync.core.entities.sync_outcome import AuditEntry
from catalog_sync.core.entities.vendor import LookupKeyType


class TestCredentials:
    """API 키 조회 테스트"""

    @pytest.mark.asyncio
    async def test_only_active_credentials_are_found(self, sql_repository):
        credential = await sql_repository.add_credential("V", api_key="key-1")

        assert (await sql_repository.find_active_credential("key-1")).vendor_id == "V"

        await sql_repository.set_credential_active(credential.id, False)
        assert await sql_repository.find_active_credential("key-1") is None

    @pytest.mark.asyncio
    async def test_generated_key_and_touch(self, sql_repository):
        credential = await sql_repository.add_credential("V")
        used_at = datetime(2024, 5, 1, tzinfo=timezone.utc)

        await sql_repository.touch_credential(credential.id, used_at)

        found = await sql_repository.find_active_credential(credential.credential_value)
        assert len(credential.credential_value) > 20
        assert found.last_used_at is not None


class TestStoreMappings:
    """스토어 매핑 조회 테스트"""

    @pytest.mark.asyncio
    async def test_domain_lookup_is_case_insensitive(self, sql_repository):
        await sql_repository.add_store_mapping(LookupKeyType.DOMAIN, "Acme.MyShopify.com", "V")

        mapping = await sql_repository.find_store_mapping(LookupKeyType.DOMAIN, "ACME.myshopify.com")
        assert mapping.vendor_id == "V"

    @pytest.mark.asyncio
    async def test_phone_lookup_ignores_formatting(self, sql_repository):
        await sql_repository.add_store_mapping(LookupKeyType.PHONE, "+234 801 234 5678", "V")

        assert (await sql_repository.find_store_mapping(LookupKeyType.PHONE, "2348012345678")).vendor_id == "V"
        assert await sql_repository.find_store_mapping(LookupKeyType.NAME, "2348012345678") is None


class TestAuditLog:
    """감사 로그 저장 테스트"""

    @pytest.mark.asyncio
    async def test_save_and_list(self, sql_repository):
        entry = AuditEntry(
            channel=SourceChannel.PUSH,
            request_method="POST",
            request_path="/api/v1/catalog/sync",
            client_ip="10.0.0.1",
            raw_request={"products": []}
        )
        entry.start(datetime(2024, 1, 1, tzinfo=timezone.utc))
        entry.complete(datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc), 401, "invalid_credential")

        await sql_repository.save_audit_entry(entry)
        entries = await sql_repository.list_audit_entries()

        assert len(entries) == 1
        assert entries[0]['http_status'] == 401
        assert entries[0]['vendor_id'] is None
        assert entries[0]['duration_ms'] == 1000
        assert entries[0]['raw_request'] == {"products": []}
        assert entries[0]['channel'] == "push"
        assert entries[0]['request_method'] == "POST"
        assert entries[0]['request_path'] == "/api/v1/catalog/sync"
        assert entries[0]['client_ip'] == "10.0.0.1"
        assert entries[0]['message'] == "invalid_credential"
