"""Change Feed Subscriber — holds at most one live subscription per view.

Invariants:
    - open(owner) while subscribed to the same owner returns the live subscription
    - open(other_owner) closes the previous subscription before subscribing again
    - close() is idempotent; the underlying subscription is closed exactly once
    - Events are trusted to be owner-filtered; the reconciler re-checks scoping
"""

import logging
from collections.abc import AsyncIterator

from smart_bookmark.core.domain_types import ChangeEvent, IdentityId
from smart_bookmark.core.repository_protocols import ChangeFeed, Subscription

logger = logging.getLogger(__name__)


class ChangeFeedSubscriber:
    """Subscription lifecycle for one view."""

    def __init__(self, feed: ChangeFeed):
        self._feed = feed
        self._subscription: Subscription | None = None

    @property
    def owner_id(self) -> IdentityId | None:
        return self._subscription.owner_id if self._subscription else None

    @property
    def active(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def open(self, owner_id: IdentityId) -> Subscription:
        if self.active and self._subscription.owner_id == owner_id:
            return self._subscription
        self.close()
        self._subscription = self._feed.subscribe(owner_id)
        return self._subscription

    def close(self) -> None:
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        subscription.close()

    async def events(self) -> AsyncIterator[ChangeEvent]:
        """Yield events from the current subscription until it closes."""
        subscription = self._subscription
        if subscription is None:
            return
        async for event in subscription:
            yield event
