"""In-process change notification for store subscribers."""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ENTITIES = ("case", "audit")


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe`` to stop."""

    notifier: "ChangeNotifier"
    tenant_id: str
    entity: str
    callbacks: dict[ChangeKind, Callable[[object], None]] = field(default_factory=dict)
    active: bool = True

    def unsubscribe(self) -> None:
        self.notifier.remove(self)


class ChangeNotifier:
    """Broadcast committed inserts, updates and deletes per tenant.

    Publishing happens after the store commit, so subscribers only ever see
    confirmed state. A failing subscriber is logged and skipped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: dict[tuple[str, str], list[Subscription]] = defaultdict(list)

    def subscribe(
        self,
        tenant_id: str,
        entity: str,
        on_insert: Optional[Callable[[object], None]] = None,
        on_update: Optional[Callable[[object], None]] = None,
        on_delete: Optional[Callable[[object], None]] = None,
    ) -> Subscription:
        if entity not in ENTITIES:
            raise ValueError(f"Unknown entity '{entity}'. Supported: {', '.join(ENTITIES)}")

        callbacks = {}
        if on_insert is not None:
            callbacks[ChangeKind.INSERT] = on_insert
        if on_update is not None:
            callbacks[ChangeKind.UPDATE] = on_update
        if on_delete is not None:
            callbacks[ChangeKind.DELETE] = on_delete

        subscription = Subscription(self, tenant_id, entity, callbacks)
        with self._lock:
            self._subscriptions[(tenant_id, entity)].append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get((subscription.tenant_id, subscription.entity), [])
            if subscription in subscribers:
                subscribers.remove(subscription)
        subscription.active = False

    def publish(self, tenant_id: str, entity: str, kind: ChangeKind, payload: object) -> None:
        with self._lock:
            subscribers = list(self._subscriptions.get((tenant_id, entity), []))

        for subscription in subscribers:
            callback = subscription.callbacks.get(kind)
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber failed handling %s %s for tenant %s", entity, kind.value, tenant_id)
