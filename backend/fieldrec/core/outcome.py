from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


class Denied:
    """Single negative result for "missing", "not visible" and "not allowed".

    Callers get no way to tell these apart.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "DENIED"


DENIED = Denied()

Outcome = Union[Ok[T], Denied]
