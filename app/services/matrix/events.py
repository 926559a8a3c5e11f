"""
Matrix event hooks.

Lets other components (notifications, statistics) react to cycles and
commissions without the engine knowing about them. Events are dispatched
only after the transaction that produced them has committed.
"""

from collections.abc import Awaitable, Callable, Iterable

from loguru import logger

from app.services.matrix.results import (
    CommissionPaidEvent,
    CycleCompletedEvent,
    MatrixEvent,
)

CycleCompletedHandler = Callable[[CycleCompletedEvent], Awaitable[None]]
CommissionPaidHandler = Callable[[CommissionPaidEvent], Awaitable[None]]


class MatrixEventHooks:
    """Registry of async event subscribers."""

    def __init__(self) -> None:
        """Initialize empty subscriber lists."""
        self._cycle_handlers: list[CycleCompletedHandler] = []
        self._commission_handlers: list[CommissionPaidHandler] = []
        self.logger = logger.bind(service="MatrixEventHooks")

    def subscribe_cycle_completed(self, handler: CycleCompletedHandler) -> None:
        """Register a handler called for every completed cycle."""
        self._cycle_handlers.append(handler)

    def subscribe_commission_paid(self, handler: CommissionPaidHandler) -> None:
        """Register a handler called for every ledger record written."""
        self._commission_handlers.append(handler)

    async def dispatch(self, events: Iterable[MatrixEvent]) -> None:
        """
        Deliver committed events to subscribers.

        A failing handler is logged and skipped; the state change it
        reports is already durable.

        Args:
            events: Events in the order they were produced
        """
        for event in events:
            if isinstance(event, CycleCompletedEvent):
                handlers = self._cycle_handlers
            else:
                handlers = self._commission_handlers

            for handler in handlers:
                try:
                    await handler(event)
                except Exception as e:
                    self.logger.bind(event=type(event).__name__).error(
                        f"Event handler {getattr(handler, '__name__', handler)} "
                        f"failed: {e}"
                    )
