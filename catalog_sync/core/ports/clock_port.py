"""시간 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """시간 인터페이스"""

    @abstractmethod
    def now(self) -> datetime:
        """현재 시간 반환 (UTC)"""
        pass

    @abstractmethod
    def elapsed_seconds(self, since: datetime) -> float:
        """기준 시각 이후 경과 시간(초)"""
        pass
