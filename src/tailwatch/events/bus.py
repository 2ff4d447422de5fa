"""Thread-safe event bus for watcher notifications."""

import logging
import threading
import uuid

from tailwatch.events.models import EventHandler, WatcherEvent

logger = logging.getLogger(__name__)

# Subscribing to this type receives every event
ALL_EVENTS = "*"


class EventBus:
    """
    Pub/sub bus decoupling the watcher from its consumers.

    Subscribers register for an event type (or ``ALL_EVENTS``) and are called
    synchronously, in subscription order, for every published event of that
    type. A failing handler is logged and does not affect the others or the
    publisher.

    Example:
        bus = EventBus()
        sub_id = bus.subscribe("update", lambda event: print(event.records))
        ...
        bus.unsubscribe(sub_id)
    """

    def __init__(self) -> None:
        # event_type -> list of (subscription_id, handler)
        self._subscribers: dict[str, list[tuple[str, EventHandler]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Event type to receive (e.g. "update"), or ``ALL_EVENTS``
            handler: Callable taking the event

        Returns:
            Subscription ID for unsubscribing
        """
        subscription_id = str(uuid.uuid4())

        with self._lock:
            self._subscribers.setdefault(event_type, []).append((subscription_id, handler))
            total = len(self._subscribers[event_type])

        logger.debug(
            "Subscribed to event type",
            extra={
                "event_type": event_type,
                "subscription_id": subscription_id,
                "total_subscribers": total,
            },
        )
        return subscription_id

    def subscribe_all(self, handler: EventHandler) -> str:
        """Subscribe to every event type."""
        return self.subscribe(ALL_EVENTS, handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if unsubscribed, False if the ID was not found
        """
        with self._lock:
            for event_type, subscribers in self._subscribers.items():
                for i, (sub_id, _) in enumerate(subscribers):
                    if sub_id == subscription_id:
                        subscribers.pop(i)
                        logger.debug(
                            "Unsubscribed from event type",
                            extra={
                                "event_type": event_type,
                                "subscription_id": subscription_id,
                            },
                        )
                        return True

        logger.warning(
            "Subscription ID not found",
            extra={"subscription_id": subscription_id},
        )
        return False

    def publish(self, event: WatcherEvent) -> None:
        """
        Deliver an event to its type's subscribers, then to wildcard subscribers.

        Args:
            event: Event to publish
        """
        with self._lock:
            subscribers = list(self._subscribers.get(event.event_type, []))
            subscribers.extend(self._subscribers.get(ALL_EVENTS, []))

        if not subscribers:
            return

        for subscription_id, handler in subscribers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Handler raised exception",
                    extra={
                        "event_type": event.event_type,
                        "subscription_id": subscription_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )

    def get_subscriber_count(self, event_type: str | None = None) -> int:
        """
        Get the number of subscribers.

        Args:
            event_type: Type to count. If None, counts across all types.
        """
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, []))
            return sum(len(subs) for subs in self._subscribers.values())
