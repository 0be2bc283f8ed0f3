"""카탈로그 동기화 예외 처리"""
from typing import Optional, Dict, Any


class CatalogSyncError(Exception):
    """카탈로그 동기화 기본 예외"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(CatalogSyncError):
    """인증 에러 (자격증명 누락/무효, 매핑되지 않은 벤더)"""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(reason, details)
        self.reason = reason


class ValidationError(CatalogSyncError):
    """요청 본문 검증 에러"""

    def __init__(self, message: str, field: str = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class UpstreamError(CatalogSyncError):
    """외부 서비스 호출 에러 (AI 추출, 저장소, 메신저)"""

    def __init__(self, message: str, service: str = None, status_code: int = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.service = service
        self.status_code = status_code


class InternalError(CatalogSyncError):
    """예상하지 못한 내부 오류"""
    pass


# 에러 타입별 상태코드 매핑
ERROR_STATUS_CODES = {
    AuthError: 401,
    ValidationError: 400,
    UpstreamError: 500,
    InternalError: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


def status_code_for(error: Exception) -> int:
    """예외를 HTTP 상태코드로 변환"""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def public_message_for(error: Exception) -> str:
    """응답에 노출할 메시지 (내부 오류 상세는 숨김)"""
    if isinstance(error, (AuthError, ValidationError)):
        return error.message
    return INTERNAL_ERROR_MESSAGE
