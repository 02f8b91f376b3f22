"""
Same-origin broadcast channel: a hub shared by every tab, one notifier per tab.

Delivery is fire-and-forget. An event reaches each other endpoint on the same
channel at most once. Endpoints with no handlers drop it, and nothing is
replayed to endpoints that join later.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable

from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.utils.logger import get_logger

logger = get_logger()

Handler = Callable[[ChangeEvent], None]


class Subscription:
    """Token returned by `ChangeNotifier.subscribe`; call `unsubscribe()` to detach."""

    def __init__(self, notifier: "ChangeNotifier", handler: Handler) -> None:
        self._notifier = notifier
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._notifier._remove(self)
            self.active = False


class BroadcastHub:
    """Registry of endpoints grouped by channel name. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: dict[str, list[ChangeNotifier]] = {}

    def join(self, channel: str, **kwargs) -> "ChangeNotifier":
        """Create an endpoint on `channel`. Keyword args go to ChangeNotifier."""
        return ChangeNotifier(self, channel, **kwargs)

    def _attach(self, endpoint: "ChangeNotifier") -> None:
        with self._lock:
            self._channels.setdefault(endpoint.channel, []).append(endpoint)

    def _detach(self, endpoint: "ChangeNotifier") -> None:
        with self._lock:
            members = self._channels.get(endpoint.channel, [])
            if endpoint in members:
                members.remove(endpoint)
            if not members:
                self._channels.pop(endpoint.channel, None)

    def endpoints(self, channel: str) -> list["ChangeNotifier"]:
        with self._lock:
            return list(self._channels.get(channel, []))

    def _route(self, sender: "ChangeNotifier", event: ChangeEvent) -> int:
        targets = [
            ep for ep in self.endpoints(sender.channel)
            if ep is not sender or sender.deliver_to_self
        ]
        for ep in targets:
            ep._receive(event)
        return len(targets)


class ChangeNotifier:
    """
    One tab's endpoint on a broadcast channel.

    Immediate mode calls handlers synchronously from `publish` (what tests
    want). Deferred mode queues incoming events until `pump()` runs, which
    models delivery happening after the write that caused it. With
    `inbox_size` set, a tab that stops pumping keeps only the newest events.
    """

    def __init__(
        self,
        hub: BroadcastHub,
        channel: str,
        *,
        deliver_to_self: bool = False,
        deferred: bool = False,
        inbox_size: int | None = None,
    ) -> None:
        self._hub = hub
        self.channel = channel
        self.deliver_to_self = deliver_to_self
        self.deferred = deferred
        self._subs: list[Subscription] = []
        self._subs_lock = threading.Lock()
        self._inbox: deque[ChangeEvent] = deque(maxlen=inbox_size)
        self._closed = False
        hub._attach(self)

    # --- pub/sub ---

    def subscribe(self, handler: Handler) -> Subscription:
        sub = Subscription(self, handler)
        with self._subs_lock:
            self._subs.append(sub)
        return sub

    def on_event(self, handler: Handler) -> Subscription:
        return self.subscribe(handler)

    def _remove(self, sub: Subscription) -> None:
        with self._subs_lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def publish(self, event: ChangeEvent) -> int:
        """Send `event` to the other endpoints on this channel. Returns how many were reached."""
        if self._closed:
            logger.debug("Publish on closed notifier ignored: %s", event.kind.value)
            return 0
        reached = self._hub._route(self, event)
        logger.debug("Broadcast %s on %s reached %d endpoint(s)", event.to_message(), self.channel, reached)
        return reached

    broadcast = publish

    # --- delivery ---

    def _receive(self, event: ChangeEvent) -> None:
        if self.deferred:
            self._inbox.append(event)
        else:
            self._dispatch(event)

    def pending(self) -> int:
        return len(self._inbox)

    def pump(self) -> int:
        """Deliver queued events (deferred mode). Returns the number of events taken off the inbox."""
        taken = 0
        while True:
            try:
                event = self._inbox.popleft()
            except IndexError:
                break
            taken += 1
            self._dispatch(event)
        return taken

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._subs_lock:
            handlers = [s.handler for s in self._subs]
        if not handlers:
            logger.debug("No listener on %s; dropped %s", self.channel, event.kind.value)
            return
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Change handler failed for %s", event.kind.value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._inbox.clear()
        self._hub._detach(self)
