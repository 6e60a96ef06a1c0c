from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from ridequeue.exceptions import DomainError

T = TypeVar("T")


class ErrorDetail(BaseModel):
    code: str
    category: str
    message: str
    status_code: int

    @classmethod
    def from_exception(cls, exc: DomainError) -> "ErrorDetail":
        return cls(
            code=exc.code,
            category=exc.category,
            message=exc.message,
            status_code=exc.status_code,
        )


class CommandResult(BaseModel, Generic[T]):
    """
    Outcome of a core command or query: either `value` or `error`, never both.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def success(cls, value: T) -> "CommandResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: DomainError) -> "CommandResult[T]":
        return cls(ok=False, error=ErrorDetail.from_exception(exc))
