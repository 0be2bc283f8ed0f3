"""카탈로그 동기화 유즈케이스 (요청 단위 오케스트레이션)

벤더 식별 -> 표준화(또는 AI 추출) -> 항목별 업서트 -> 결과 집계 -> 감사 로그 순으로 처리한다.
인증/구조 검증 실패는 요청 전체를 중단하고, 항목별 실패는 결과의 거부 목록에만 기록한다.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple
import hmac
import json

from catalog_sync.core.entities.inbound import InboundRequest, MessageEnvelope, normalize_msisdn
from catalog_sync.core.entities.product import SourceChannel, REQUIRED_FIELDS_MESSAGE
from catalog_sync.core.entities.sync_outcome import AuditEntry, SyncOutcome
from catalog_sync.core.entities.vendor import VendorIdentity
from catalog_sync.core.exceptions import (
    AuthError, CatalogSyncError, ValidationError, INTERNAL_ERROR_MESSAGE,
    status_code_for, public_message_for
)
from catalog_sync.core.ports.repo_port import CatalogRepositoryPort
from catalog_sync.core.ports.clock_port import ClockPort
from catalog_sync.core.ports.messaging_port import MessagingPort, MediaStoragePort
from catalog_sync.core.usecases.extract_product import ExtractionAdapter
from catalog_sync.core.usecases.normalize_payload import PayloadNormalizer, NormalizedItem
from catalog_sync.core.usecases.reconcile_listing import ListingReconciler
from catalog_sync.core.usecases.resolve_vendor import VendorResolver
from catalog_sync.shared.config import Settings
from catalog_sync.shared.logging import get_logger, log_api_request

logger = get_logger(__name__)

METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed"
INVALID_JSON_MESSAGE = "Invalid JSON body"
INVALID_WEBHOOK_TOKEN = "invalid_webhook_token"
NO_MESSAGES_MESSAGE = "No messages"
WEBHOOK_TOKEN_HEADER = "x-webhook-token"


@dataclass
class SyncReport:
    """요청 처리 결과"""
    status_code: int
    outcome: Optional[SyncOutcome] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status_code == 200 and self.outcome is not None


class SyncCatalogUseCase:
    """카탈로그 동기화 오케스트레이터"""

    def __init__(
        self,
        repository: CatalogRepositoryPort,
        clock: ClockPort,
        normalizer: PayloadNormalizer,
        reconciler: ListingReconciler,
        extractor: ExtractionAdapter,
        settings: Settings,
        messaging: Optional[MessagingPort] = None,
        media_storage: Optional[MediaStoragePort] = None
    ):
        self.repository = repository
        self.clock = clock
        self.normalizer = normalizer
        self.reconciler = reconciler
        self.extractor = extractor
        self.settings = settings
        self.messaging = messaging
        self.media_storage = media_storage

    async def execute(self, request: InboundRequest, channel: SourceChannel) -> SyncReport:
        """요청 처리 (항상 SyncReport 반환, 예외를 전파하지 않음)"""
        if request.method.upper() != "POST":
            return SyncReport(status_code=405, error=METHOD_NOT_ALLOWED_MESSAGE)

        audit = AuditEntry(
            channel=channel,
            request_method=request.method.upper(),
            request_path=request.path,
            client_ip=request.client_ip,
            user_agent=request.user_agent
        )
        audit.start(self.clock.now())

        try:
            if channel == SourceChannel.CONVERSATIONAL:
                report = await self._process_conversational(request, audit)
            else:
                report = await self._process_structured(request, channel, audit)
        except CatalogSyncError as e:
            status_code = status_code_for(e)
            if status_code >= 500:
                logger.error(f"카탈로그 동기화 실패: {e.message}", exc_info=True)
            report = SyncReport(status_code=status_code, error=public_message_for(e), message=e.message)
        except Exception as e:
            logger.error(f"카탈로그 동기화 오류: {e}", exc_info=True)
            report = SyncReport(
                status_code=500,
                error=INTERNAL_ERROR_MESSAGE,
                message=f"Internal server error: {e}"
            )

        audit.complete(self.clock.now(), report.status_code, report.message or report.error or "")
        await self._write_audit(audit)
        log_api_request(logger, audit.request_method, audit.request_path, report.status_code,
                        (audit.duration_ms or 0.0) / 1000)
        return report

    def verify_subscription(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        """메신저 웹훅 구독 확인 (성공시 challenge 반환)"""
        expected = self.settings.meta_verify_token
        if mode != "subscribe" or not expected or token is None:
            return None
        if not hmac.compare_digest(token.encode(), expected.encode()):
            return None
        return challenge or ""

    # 구조화 채널 (push, platform webhook)
    async def _process_structured(
        self,
        request: InboundRequest,
        channel: SourceChannel,
        audit: AuditEntry
    ) -> SyncReport:
        if channel == SourceChannel.PLATFORM_WEBHOOK:
            self._check_webhook_token(request)

        body, parsed = self._decode_body(request.raw_body)
        request.body = body
        audit.raw_request = body if parsed else request.raw_body.decode("utf-8", errors="replace")

        identity = await self._resolve(request, channel, audit)

        if not parsed:
            raise ValidationError(INVALID_JSON_MESSAGE)

        payload = self.normalizer.normalize(body, channel)
        logger.info(
            f"페이로드 분류: {payload.shape.value}, 항목 {len(payload.items)}개 (vendor={identity.vendor_id})"
        )

        outcome = await self._reconcile_all(identity.vendor_id, payload.items)
        return SyncReport(status_code=200, outcome=outcome, message=outcome.summary())

    # 대화형 채널 (메신저)
    async def _process_conversational(self, request: InboundRequest, audit: AuditEntry) -> SyncReport:
        body, parsed = self._decode_body(request.raw_body)
        if not parsed:
            raise ValidationError(INVALID_JSON_MESSAGE)
        request.body = body
        audit.raw_request = body

        envelope = MessageEnvelope.from_payload(body)
        if envelope is None:
            # 상태 알림 등 메시지가 없는 웹훅은 무시
            return SyncReport(status_code=200, outcome=SyncOutcome(), message=NO_MESSAGES_MESSAGE)

        try:
            identity = await self._resolve(request, SourceChannel.CONVERSATIONAL, audit)
        except AuthError:
            await self._reply(envelope.sender, self._not_linked_message())
            raise

        media_urls = await self._collect_media(envelope)

        if audit.started_at and self.clock.elapsed_seconds(audit.started_at) > self.settings.ack_after_seconds:
            await self._reply(envelope.sender, "✅ Got your product. Processing now…")

        fragment = await self.extractor.extract(envelope.text, has_media=bool(media_urls))
        product = self.normalizer.normalize_extracted(fragment, envelope.message_id, media_urls)

        outcome = await self._reconcile_all(identity.vendor_id, [NormalizedItem(index=0, product=product)])

        if outcome.accepted_count:
            await self._reply(
                envelope.sender,
                f"✅ Your product “{product.title}” has been added to your {self.settings.catalog_name} "
                f"catalog and is now discoverable.\nID: {outcome.listing_ids[0]}"
            )
        else:
            await self._reply(
                envelope.sender,
                f"⚠️ We couldn't add your product “{product.title}”. Please try again later."
            )

        return SyncReport(status_code=200, outcome=outcome, message=outcome.summary())

    async def _resolve(self, request: InboundRequest, channel: SourceChannel, audit: AuditEntry) -> VendorIdentity:
        resolver = VendorResolver.for_channel(channel, self.repository, self.clock)
        identity = await resolver.resolve(request)
        audit.vendor_id = identity.vendor_id
        audit.credential_id = identity.credential_id
        return identity

    async def _reconcile_all(self, vendor_id: str, items: List[NormalizedItem]) -> SyncOutcome:
        """항목별 검증 및 업서트 (한 항목의 실패가 다른 항목을 중단시키지 않음)"""
        outcome = SyncOutcome()

        for item in items:
            if item.error or item.product is None:
                outcome.add_failure(item.reference, item.error or "product could not be normalized")
                continue

            product = item.product
            if not product.has_required_fields():
                outcome.add_failure(item.reference, REQUIRED_FIELDS_MESSAGE)
                continue

            result = await self.reconciler.reconcile(vendor_id, product)
            if result.is_success():
                outcome.add_success(result.get_value().id)
            else:
                outcome.add_failure(item.reference, result.get_error())

        if outcome.error_count:
            logger.warning(f"일부 상품 동기화 실패: {outcome.error_count}/{outcome.total_count} (vendor={vendor_id})")
        return outcome

    async def _collect_media(self, envelope: MessageEnvelope) -> List[str]:
        """첨부 이미지 다운로드 후 저장소 업로드 (실패해도 계속 진행)"""
        if not envelope.media_id or self.messaging is None or self.media_storage is None:
            return []

        try:
            media = await self.messaging.download_media(envelope.media_id)
            path = f"wa/{normalize_msisdn(envelope.sender)}/{envelope.message_id}.{media.extension}"
            url = await self.media_storage.store_image(path, media)
        except Exception as e:
            logger.error(f"이미지 처리 실패 {envelope.message_id}: {e}")
            return []

        return [url]

    async def _reply(self, recipient: str, text: str) -> None:
        if self.messaging is None or not recipient:
            return
        await self.messaging.send_text(recipient, text)

    def _not_linked_message(self) -> str:
        return (
            f"👋 Your WhatsApp number isn't linked to a {self.settings.catalog_name} vendor account yet.\n"
            f"Please log in and add your WhatsApp number in your profile → {self.settings.vendor_portal_url}\n"
            "Then send your product again."
        )

    def _check_webhook_token(self, request: InboundRequest) -> None:
        """플랫폼 웹훅 공유 토큰 확인 (설정된 경우에만)"""
        expected = self.settings.platform_webhook_secret
        if not expected:
            return

        supplied = request.header(WEBHOOK_TOKEN_HEADER) or ""
        if not hmac.compare_digest(supplied.encode(), expected.encode()):
            raise AuthError(INVALID_WEBHOOK_TOKEN)

    @staticmethod
    def _decode_body(raw_body: bytes) -> Tuple[Any, bool]:
        """JSON 본문 파싱 (빈 본문은 None)"""
        if not raw_body or not raw_body.strip():
            return None, True
        try:
            return json.loads(raw_body), True
        except (ValueError, UnicodeDecodeError):
            return None, False

    async def _write_audit(self, audit: AuditEntry) -> None:
        """감사 로그 저장 (실패해도 응답에 영향 없음)"""
        try:
            await self.repository.save_audit_entry(audit)
        except Exception as e:
            logger.error(f"감사 로그 저장 실패: {e}")
