from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel

from models import EventKind

logger = logging.getLogger(__name__)

ChannelKey = Tuple[str, str]


def channel_key(game_name: str, player_name: str) -> ChannelKey:
    return (game_name, player_name)


class NotificationPort(Protocol):
    """Push channel the game publishes state changes to."""

    def create_channel(self, game_name: str, player_name: str) -> None: ...

    def publish(self, key: ChannelKey, event_kind: EventKind, payload: Any) -> None: ...


class Subscription:
    """One connected socket's view of a channel."""

    def __init__(self, key: ChannelKey, maxsize: int):
        self.key = key
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.loop = asyncio.get_running_loop()

    def offer(self, message: dict) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Channel %s/%s is full, dropping %s event", *self.key, message["type"])


class Hub:
    """NotificationPort fanning out to every socket subscribed to a (game, player).

    Each subscriber gets its own bounded queue. Delivery is best-effort and
    at most once: publishing to an unknown channel, to a channel nobody
    listens on, or to a full queue drops the message.
    """

    def __init__(self, buffer_size: int = 64):
        self.buffer_size = buffer_size
        self._channels: Dict[ChannelKey, List[Subscription]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # NotificationPort
    # ------------------------------------------------------------------
    def create_channel(self, game_name: str, player_name: str) -> None:
        key = channel_key(game_name, player_name)
        with self._lock:
            if key not in self._channels:
                self._channels[key] = []
                logger.debug("Created channel %s/%s", *key)

    def publish(self, key: ChannelKey, event_kind: EventKind, payload: Any) -> None:
        with self._lock:
            subscribers = self._channels.get(key)
            subscribers = list(subscribers) if subscribers is not None else None
        if subscribers is None:
            logger.warning("Dropping %s event for unknown channel %s/%s", event_kind, *key)
            return
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        message = {"type": event_kind, "payload": payload}

        current = _running_loop()
        for sub in subscribers:
            if sub.loop is current:
                sub.offer(message)
            elif sub.loop.is_closed():
                logger.debug("Skipping subscriber of %s/%s on a closed loop", *key)
            else:
                sub.loop.call_soon_threadsafe(sub.offer, message)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------
    def has_channel(self, game_name: str, player_name: str) -> bool:
        with self._lock:
            return channel_key(game_name, player_name) in self._channels

    def subscriber_count(self, game_name: str, player_name: str) -> int:
        with self._lock:
            return len(self._channels.get(channel_key(game_name, player_name), []))

    def subscribe(self, game_name: str, player_name: str) -> Subscription:
        """Attach a new subscriber on the running loop.

        The subscription only sees events published after this call; the
        caller is expected to start from a fresh state snapshot.
        """
        key = channel_key(game_name, player_name)
        with self._lock:
            subscribers = self._channels.get(key)
            if subscribers is None:
                raise KeyError(key)
            sub = Subscription(key, self.buffer_size)
            subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subscribers = self._channels.get(sub.key, [])
            if sub in subscribers:
                subscribers.remove(sub)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
