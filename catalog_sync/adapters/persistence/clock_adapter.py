"""시간 어댑터"""
from datetime import datetime, timezone

from catalog_sync.core.ports.clock_port import ClockPort


class ClockAdapter(ClockPort):
    """시간 어댑터 구현체"""

    def now(self) -> datetime:
        """현재 시간 반환 (UTC)"""
        return datetime.now(timezone.utc)

    def elapsed_seconds(self, since: datetime) -> float:
        """기준 시각 이후 경과 시간(초)"""
        return (self.now() - since).total_seconds()
