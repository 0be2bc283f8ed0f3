"""Result/Either 모나드 패턴"""
from typing import TypeVar, Generic, Union
from dataclasses import dataclass

T = TypeVar('T')


@dataclass
class Success(Generic[T]):
    """성공 결과"""
    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def get_value(self) -> T:
        return self.value

    def get_error(self) -> None:
        return None


@dataclass
class Failure(Generic[T]):
    """실패 결과"""
    error: str
    value: T = None

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def get_value(self) -> T:
        return self.value

    def get_error(self) -> str:
        return self.error


# Union type for type hints
Result = Union[Success[T], Failure[T]]
