"""Subscriber registry: pushes every published state to the views."""
import inspect
import logging
from typing import Awaitable, Callable

from collab_client.schemas.state import ReconciledState

logger = logging.getLogger(__name__)

Subscriber = Callable[[ReconciledState], Awaitable[None] | None]


class SubscriptionManager:
    """Manages state subscribers (plain or async callables)."""

    def __init__(self):
        self.subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self.subscribers.append(callback)
        logger.debug(f'Subscriber added. Total subscribers: {len(self.subscribers)}')
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber):
        if callback in self.subscribers:
            self.subscribers.remove(callback)
        logger.debug(f'Subscriber removed. Remaining: {len(self.subscribers)}')

    async def broadcast(self, state: ReconciledState, is_current: Callable[[], bool] | None = None):
        """Send a state to every subscriber; drop the ones that fail.

        Stops early once `is_current` turns false: a newer state has been
        published meanwhile and its own broadcast reaches the rest.
        """
        dead_subscribers = []
        for callback in list(self.subscribers):
            if is_current is not None and not is_current():
                logger.debug('Broadcast superseded by a newer state')
                break
            try:
                result = callback(state)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f'Subscriber {callback!r} failed, unsubscribing: {e}')
                dead_subscribers.append(callback)
        for callback in dead_subscribers:
            self.unsubscribe(callback)
