"""애플리케이션 설정"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
import os


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 데이터베이스
    database_url: str = Field(default="sqlite+aiosqlite:///./catalog_sync.db")
    auto_create_tables: bool = Field(default=True)

    # 로깅
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # API 설정
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_reload: bool = Field(default=False)
    request_timeout: int = Field(default=30)

    # 채널별 기본값
    default_category: str = Field(default="Uncategorized")
    default_status: str = Field(default="active")
    push_default_inventory: int = Field(default=1)
    webhook_default_inventory: int = Field(default=0)
    conversational_default_currency: str = Field(default="NGN")

    # 플랫폼 웹훅 공유 토큰 (비어 있으면 검사하지 않음)
    platform_webhook_secret: Optional[str] = Field(default=None)

    # AI 추출
    openai_api_key: Optional[str] = Field(default=None)
    openai_api_base_url: str = Field(default="https://api.openai.com")
    openai_model: str = Field(default="gpt-4o-mini")
    extraction_timeout: float = Field(default=20.0)

    # 메신저 (WhatsApp Cloud API)
    whatsapp_api_url: str = Field(default="https://graph.facebook.com/v20.0")
    whatsapp_token: Optional[str] = Field(default=None)
    whatsapp_phone_number_id: Optional[str] = Field(default=None)
    meta_verify_token: Optional[str] = Field(default=None)
    ack_after_seconds: float = Field(default=3.0)

    # 이미지 저장소
    storage_url: Optional[str] = Field(default=None)
    storage_service_key: Optional[str] = Field(default=None)
    storage_bucket: str = Field(default="vendor_listing_images")

    # 안내 메시지
    catalog_name: str = Field(default="marketplace")
    vendor_portal_url: str = Field(default="https://example.com/vendor")

    class Config:
        # .env 파일이 있는 경우에만 읽기
        env_file = ".env" if os.path.exists(".env") else None
        case_sensitive = False


# 전역 설정 인스턴스
settings = Settings()


def get_settings() -> Settings:
    """설정 인스턴스 반환"""
    return settings
