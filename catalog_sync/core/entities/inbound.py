"""인바운드 요청 도메인 엔티티 (HTTP 프레임워크 독립)"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
import re


@dataclass
class InboundRequest:
    """파이프라인에 전달되는 요청"""
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    raw_body: bytes = b""
    client_ip: str = "unknown"
    user_agent: str = ""
    body: Optional[Any] = None  # JSON 파싱 결과

    def __post_init__(self):
        """헤더 키 소문자 통일"""
        self.headers = {key.lower(): value for key, value in self.headers.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def bearer_token(self) -> Optional[str]:
        """Authorization: Bearer <token> 값 추출"""
        auth_header = self.header("authorization")
        if not auth_header:
            return None

        scheme, _, token = auth_header.strip().partition(" ")
        if scheme.lower() != "bearer":
            return None
        return token.strip() or None


def normalize_msisdn(value: Any) -> str:
    """전화번호에서 숫자만 남김"""
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def _first(items: Any) -> Dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


@dataclass
class MessageEnvelope:
    """메신저 웹훅의 첫 번째 메시지"""
    sender: str
    message_id: str
    message_type: str = "text"
    text_parts: List[str] = field(default_factory=list)
    media_id: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.text_parts).strip()

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["MessageEnvelope"]:
        """entry[0].changes[0].value.messages[0] 추출 (메시지가 없으면 None)"""
        if not isinstance(payload, dict):
            return None

        entry = _first(payload.get("entry"))
        change = _first(entry.get("changes"))
        value = change.get("value") if isinstance(change.get("value"), dict) else {}
        message = _first(value.get("messages"))
        if not message:
            return None

        contact = _first(value.get("contacts"))
        sender = contact.get("wa_id") or message.get("from") or ""

        text_parts = []
        for key, attr in (("text", "body"), ("image", "caption"), ("document", "caption")):
            section = message.get(key)
            if isinstance(section, dict) and section.get(attr):
                text_parts.append(str(section[attr]))

        message_type = message.get("type") or "text"
        media_id = None
        image = message.get("image")
        if message_type == "image" and isinstance(image, dict) and image.get("id"):
            media_id = str(image["id"])

        return cls(
            sender=str(sender),
            message_id=str(message.get("id") or ""),
            message_type=message_type,
            text_parts=text_parts,
            media_id=media_id
        )
