from dataclasses import dataclass
from typing import Generic, TypeVar

from app.services.errors import ServiceError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ServiceError


Result = Ok[T] | Err
