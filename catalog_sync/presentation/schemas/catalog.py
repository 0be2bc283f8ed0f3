"""카탈로그 동기화 응답 스키마"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from catalog_sync.core.usecases.sync_catalog import SyncReport


class CatalogSyncResponse(BaseModel):
    """동기화 성공 응답"""
    success: bool = True
    message: str
    processed_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    errors: Optional[List[str]] = None


class ErrorResponse(BaseModel):
    """오류 응답"""
    error: str


def build_response_body(report: SyncReport) -> Dict[str, Any]:
    """SyncReport를 응답 본문으로 변환 (errors는 비어 있지 않을 때만 포함)"""
    if report.outcome is None or report.status_code != 200:
        return ErrorResponse(error=report.error or "").model_dump()

    outcome = report.outcome
    response = CatalogSyncResponse(
        success=True,
        message=report.message or outcome.summary(),
        processed_count=outcome.accepted_count,
        error_count=outcome.error_count,
        errors=outcome.error_messages() or None
    )
    return response.model_dump(exclude_none=True)
