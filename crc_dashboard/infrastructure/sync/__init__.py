"""Broadcast channel between tabs."""

from crc_dashboard.infrastructure.sync.events import ChangeEvent, EventKind
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub, ChangeNotifier, Subscription

__all__ = ["BroadcastHub", "ChangeEvent", "ChangeNotifier", "EventKind", "Subscription"]
