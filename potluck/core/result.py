"""Result values returned by every public service operation."""
import functools
import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from potluck.core.errors import MealPlanError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Either a success value or exactly one classified error."""

    value: T | None = None
    error: MealPlanError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: MealPlanError) -> "Result[T]":
        return cls(error=error)

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value


def operation(func):
    """Wrap a service method so it always returns a Result.

    Classified errors pass through unchanged, SQLAlchemy failures become
    StoreError. The service's store is rolled back on any failure so a
    half-applied transaction never leaks into the next call.
    """

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return Result.ok(func(self, *args, **kwargs))
        except MealPlanError as e:
            self.store.rollback()
            logger.info(f"{func.__qualname__} rejected: {e.kind}: {e.message}")
            return Result.fail(e)
        except SQLAlchemyError as e:
            self.store.rollback()
            logger.error(f"{func.__qualname__} failed in the store: {e}")
            return Result.fail(StoreError(details={"cause": type(e).__name__}))

    return wrapper
