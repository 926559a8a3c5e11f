"""
Base service class.

Provides common functionality for matrix engine services: session access,
logging with bound service context and an operation timing decorator.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Provides common functionality for all session-bound services:
    - Session management
    - Logging with bound service context
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def flush(self) -> None:
        """
        Flush pending changes without committing.

        Raises:
            Exception: If flush fails
        """
        await self.session.flush()


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to log method entry/exit with timing.

    Logs:
    - Method entry
    - Method exit with duration
    - Exceptions if any (re-raised)

    Usage:
        @log_operation
        async def process(self, entry: PendingEntry):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()

        self.logger.debug(
            f"Starting {func.__name__}",
            extra={
                "function": func.__name__,
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()),
            },
        )

        try:
            result = await func(self, *args, **kwargs)
            duration = time.time() - start_time

            self.logger.debug(
                f"Completed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(duration, 3),
                    "success": True,
                },
            )

            return result

        except Exception as e:
            duration = time.time() - start_time

            self.logger.bind(
                function=func.__name__,
                duration_seconds=round(duration, 3),
                success=False,
            ).warning(f"Failed {func.__name__}: {e}")

            raise

    return wrapper
