"""OpenAI 상품 추출 어댑터"""
from typing import Any, Dict, Optional
import json

import httpx

from catalog_sync.core.exceptions import UpstreamError
from catalog_sync.core.ports.extraction_port import (
    ExtractionPort, PRODUCT_EXTRACTION_SCHEMA, EXTRACTION_INSTRUCTIONS
)
from catalog_sync.shared.logging import LoggerMixin


class OpenAIExtractionAdapter(ExtractionPort, LoggerMixin):
    """chat/completions + JSON 스키마 응답 형식"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com",
        timeout: float = 20.0
    ):
        self.client = client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def build_request(self, text: str, has_media: bool) -> Dict[str, Any]:
        """요청 본문 생성"""
        media_note = "ARE" if has_media else "ARE NO"
        return {
            "model": self.model,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "Product", "schema": PRODUCT_EXTRACTION_SCHEMA},
            },
            "messages": [
                {"role": "system", "content": EXTRACTION_INSTRUCTIONS},
                {
                    "role": "user",
                    "content": f"Text:\n{text}\n\nThere {media_note} images attached. "
                               "Infer category and tags if reasonable.",
                },
            ],
        }

    async def extract_product(self, text: str, has_media: bool) -> Dict[str, Any]:
        """자유 텍스트에서 상품 필드 추출"""
        if not self.api_key:
            raise UpstreamError("OPENAI_API_KEY is not configured", service="openai")

        url = f"{self.base_url}/v1/chat/completions"
        try:
            response = await self.client.post(
                url,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=self.build_request(text, has_media),
                timeout=self.timeout
            )
        except httpx.HTTPError as e:
            self.logger.error(f"AI 추출 요청 실패: {e}")
            raise UpstreamError("Failed to contact extraction provider", service="openai") from e

        if response.status_code >= 400:
            self.logger.error(f"AI 추출 HTTP {response.status_code}: {response.text[:500]}")
            raise UpstreamError(
                f"Extraction provider returned HTTP {response.status_code}",
                service="openai",
                status_code=response.status_code
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
            parsed = json.loads(content or "{}")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.logger.error(f"AI 추출 응답 형식 오류: {response.text[:500]}")
            raise UpstreamError("Extraction provider returned an unexpected payload", service="openai") from e

        if not isinstance(parsed, dict):
            raise UpstreamError("Extraction provider returned a non-object result", service="openai")

        return parsed
