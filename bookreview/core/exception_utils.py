import functools
import logging
from typing import Any, Callable, Optional, Type, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bookreview.core.exceptions import (
    BaseAppException,
    InternalServerError,
    ResourceAlreadyExists,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True when an integrity error comes from a unique or primary key constraint."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    # SQLite reports constraint kinds only in the message.
    return "unique constraint" in str(orig).lower()


def raise_for_status(
    *,
    condition: bool,
    exception: Type[BaseAppException],
    detail: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Raise `exception` when `condition` holds."""
    if condition:
        raise exception(detail, **kwargs)


def handle_exceptions(
    default_exception: Union[Type[BaseAppException], BaseAppException] = InternalServerError,
    message: Optional[str] = None,
) -> Callable:
    """
    Decorator for repository coroutines.

    Application exceptions pass through untouched. A storage-level uniqueness
    violation becomes a conflict. Other integrity errors (foreign key, check)
    and anything else become `default_exception`.
    The original error is logged but never exposed to callers.
    """

    def _build_default() -> BaseAppException:
        if isinstance(default_exception, BaseAppException):
            return default_exception
        return default_exception(message)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except BaseAppException:
                raise
            except IntegrityError as e:
                logger.warning(
                    f"Integrity violation in {func.__qualname__}",
                    extra={"error": str(e.orig)},
                )
                if not is_unique_violation(e):
                    raise _build_default() from e
                raise ResourceAlreadyExists(
                    "A record with the same unique fields already exists."
                ) from e
            except SQLAlchemyError as e:
                logger.error(
                    f"Database error in {func.__qualname__}", exc_info=True
                )
                raise _build_default() from e
            except Exception as e:
                logger.error(
                    f"Unexpected error in {func.__qualname__}", exc_info=True
                )
                raise _build_default() from e

        return wrapper

    return decorator
