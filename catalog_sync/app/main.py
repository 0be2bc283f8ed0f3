"""FastAPI 애플리케이션 메인 파일 (헥사고날 아키텍처)"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_sync.app.di import build_container
from catalog_sync.app.routes import health, catalog
from catalog_sync.core.usecases.sync_catalog import METHOD_NOT_ALLOWED_MESSAGE
from catalog_sync.shared.config import Settings, get_settings
from catalog_sync.shared.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, overrides: Optional[Dict[str, Any]] = None) -> FastAPI:
    """FastAPI 애플리케이션 생성"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """애플리케이션 생명주기 관리"""
        configure_logging(settings.log_level, settings.log_format)
        logger.info("카탈로그 동기화 서비스 시작")

        app.state.container = await build_container(settings, overrides)

        yield

        await app.state.container.aclose()
        logger.info("카탈로그 동기화 서비스 종료")

    app = FastAPI(
        title="벤더 카탈로그 동기화",
        description="벤더 상품 목록을 마켓플레이스 리스팅으로 동기화하는 수집 서비스",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS 미들웨어
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """프레임워크 HTTP 오류를 {"error": ...} 형식으로 통일"""
        detail = METHOD_NOT_ALLOWED_MESSAGE if exc.status_code == 405 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(detail)},
            headers=getattr(exc, "headers", None)
        )

    # API 라우터 등록
    api_router = APIRouter(prefix="/api/v1")
    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])

    app.include_router(api_router)

    return app


# 애플리케이션 인스턴스
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "catalog_sync.app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
