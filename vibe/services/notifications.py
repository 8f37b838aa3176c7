"""
Real-time notification fan-out.

``NotificationHub`` is the registry of connected users and their delivery
channels (one per open SSE stream). ``NotificationDispatcher`` builds events
and pushes them best-effort: a recipient who is not connected simply misses
the event.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
import asyncio
import json
import threading
import uuid

from ..logging_config import get_logger

logger = get_logger("notifications")


class NotificationType:
    LIKE = "like"
    DISLIKE = "dislike"
    COMMENT = "comment"


@dataclass
class NotificationEvent:
    """Event pushed to a recipient's channel"""
    type: str
    actor_id: str
    actor: Dict
    target_id: str
    message: str
    id: str = ""
    timestamp: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = f"evt_{uuid.uuid4().hex[:8]}"
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict:
        return asdict(self)

    def to_sse(self) -> str:
        """Format as SSE message"""
        return f"id: {self.id}\nevent: notification\ndata: {json.dumps(self.to_dict())}\n\n"


@dataclass(eq=False)
class Channel:
    """Delivery handle for one connected stream."""
    user_id: str
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    def push(self, event: NotificationEvent) -> None:
        # Producers run in worker threads; hand the event to the stream's loop.
        self.loop.call_soon_threadsafe(self.queue.put_nowait, event)


class NotificationHub:
    """Process-wide map of online users to their channels."""

    def __init__(self):
        self._channels: Dict[str, Set[Channel]] = {}
        self._lock = threading.Lock()

    def connect(self, user_id: str) -> Channel:
        channel = Channel(user_id=user_id, loop=asyncio.get_running_loop())
        with self._lock:
            self._channels.setdefault(user_id, set()).add(channel)
        logger.info("Channel connected", user_id=user_id)
        return channel

    def disconnect(self, channel: Channel) -> None:
        with self._lock:
            channels = self._channels.get(channel.user_id)
            if channels is not None:
                channels.discard(channel)
                if not channels:
                    del self._channels[channel.user_id]
        logger.info("Channel disconnected", user_id=channel.user_id)

    def channels_for(self, user_id: str) -> List[Channel]:
        with self._lock:
            return list(self._channels.get(user_id, ()))

    def is_online(self, user_id: str) -> Optional[List[Channel]]:
        """Channels of a connected user, or None when offline."""
        return self.channels_for(user_id) or None

    def send(self, channel: Channel, event: NotificationEvent) -> None:
        channel.push(event)

    @property
    def online_count(self) -> int:
        with self._lock:
            return len(self._channels)

    @property
    def channel_count(self) -> int:
        with self._lock:
            return sum(len(c) for c in self._channels.values())


# Global hub, wired into services through get_dispatcher
notification_hub = NotificationHub()


def actor_summary(user) -> Dict:
    return {"id": user.id, "username": user.username, "profile_pic": user.profile_pic}


class NotificationDispatcher:
    """Fire-and-forget delivery of engagement events."""

    def __init__(self, hub: NotificationHub):
        self.hub = hub

    def notify(self, recipient_id: str, event: NotificationEvent) -> bool:
        """Push an event to every channel of the recipient. Never raises."""
        channels = self.hub.is_online(recipient_id)
        if not channels:
            logger.debug("Recipient offline", recipient_id=recipient_id, event_type=event.type)
            return False

        delivered = False
        for channel in channels:
            try:
                self.hub.send(channel, event)
                delivered = True
            except RuntimeError as e:
                # Loop already closed: the stream is going away
                logger.warning("Notification delivery failed", error=e, recipient_id=recipient_id)
        return delivered

    def engagement(self, kind: str, actor, recipient_id: str, target_id: str, message: str) -> bool:
        """Notify ``recipient_id`` about ``actor``'s action, skipping self-actions."""
        if actor.id == recipient_id:
            return False
        event = NotificationEvent(
            type=kind,
            actor_id=actor.id,
            actor=actor_summary(actor),
            target_id=target_id,
            message=message,
        )
        return self.notify(recipient_id, event)


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; tests override it with a recording dispatcher."""
    return NotificationDispatcher(notification_hub)
