"""카탈로그 동기화 라우트"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from catalog_sync.app.di import get_sync_catalog_usecase
from catalog_sync.core.entities.inbound import InboundRequest
from catalog_sync.core.entities.product import SourceChannel
from catalog_sync.core.usecases.sync_catalog import SyncCatalogUseCase
from catalog_sync.presentation.schemas.catalog import build_response_body
from catalog_sync.shared.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def client_ip_of(request: Request) -> str:
    """프록시 헤더를 고려한 클라이언트 IP"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


async def to_inbound_request(request: Request) -> InboundRequest:
    """FastAPI 요청을 도메인 요청으로 변환"""
    return InboundRequest(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        raw_body=await request.body(),
        client_ip=client_ip_of(request),
        user_agent=request.headers.get("user-agent", "")
    )


async def _run(request: Request, usecase: SyncCatalogUseCase, channel: SourceChannel) -> JSONResponse:
    inbound = await to_inbound_request(request)
    report = await usecase.execute(inbound, channel)
    return JSONResponse(status_code=report.status_code, content=build_response_body(report))


@router.post("/sync")
async def push_sync(request: Request, usecase: SyncCatalogUseCase = Depends(get_sync_catalog_usecase)):
    """벤더 직접 전송 (API 키 또는 스토어 매핑)"""
    return await _run(request, usecase, SourceChannel.PUSH)


@router.post("/webhooks/platform")
async def platform_webhook(request: Request, usecase: SyncCatalogUseCase = Depends(get_sync_catalog_usecase)):
    """외부 커머스 플랫폼 상품 웹훅"""
    return await _run(request, usecase, SourceChannel.PLATFORM_WEBHOOK)


@router.get("/webhooks/messaging")
async def verify_messaging_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
    usecase: SyncCatalogUseCase = Depends(get_sync_catalog_usecase)
):
    """메신저 웹훅 구독 확인"""
    verified = usecase.verify_subscription(mode, token, challenge)
    if verified is None:
        logger.warning("메신저 웹훅 구독 확인 실패")
        return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)
    return PlainTextResponse(verified)


@router.post("/webhooks/messaging")
async def messaging_webhook(request: Request, usecase: SyncCatalogUseCase = Depends(get_sync_catalog_usecase)):
    """메신저 대화형 상품 등록"""
    return await _run(request, usecase, SourceChannel.CONVERSATIONAL)
