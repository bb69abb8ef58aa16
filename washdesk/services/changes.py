"""Transport independent change notifications for tenant tables."""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from typing import Awaitable, Callable, DefaultDict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], Union[Awaitable[None], None]]


class ChangeFeed:
    """Fan out "table changed" events to registered callbacks.

    Callbacks receive the record kind that changed. A subscriber may be
    scoped to one business; it then only hears events published for that
    business or events published without one. Coroutine callbacks are
    awaited in registration order; a failing callback is logged and does not
    prevent the remaining subscribers from running.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[
            str, List[Tuple[Optional[str], ChangeCallback]]
        ] = defaultdict(list)

    def subscribe(
        self,
        kind: str,
        callback: ChangeCallback,
        *,
        business_id: Optional[str] = None,
    ) -> Callable[[], None]:
        entry = (business_id, callback)
        self._subscribers[kind].append(entry)
        logger.debug("Subscribed %r to %s changes (business %s)", callback, kind, business_id)

        def unsubscribe() -> None:
            entries = self._subscribers.get(kind, [])
            if entry in entries:
                entries.remove(entry)

        return unsubscribe

    def subscriber_count(self, kind: str, business_id: Optional[str] = None) -> int:
        return len(self._matching(kind, business_id))

    def _matching(self, kind: str, business_id: Optional[str]) -> List[ChangeCallback]:
        return [
            callback
            for scope, callback in self._subscribers.get(kind, [])
            if business_id is None or scope is None or scope == business_id
        ]

    async def publish(self, kind: str, business_id: Optional[str] = None) -> int:
        """Notify subscribers of ``kind``; ``business_id=None`` reaches every business."""

        callbacks = self._matching(kind, business_id)
        logger.debug(
            "Publishing %s change for business %s to %d subscriber(s)",
            kind,
            business_id,
            len(callbacks),
        )
        for callback in callbacks:
            try:
                result = callback(kind)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Change subscriber failed for %s", kind)
        return len(callbacks)
