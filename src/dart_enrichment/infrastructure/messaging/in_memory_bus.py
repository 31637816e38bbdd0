# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""In-process message bus.

Purpose:
    Asyncio implementation of :class:`MessageBus` used by the service runtime
    and the tests. Each (topic, group) subscription owns a queue and a
    dispatcher task; every message is handled in its own task so independent
    messages are processed concurrently.

Layer:
    infrastructure/messaging

Notes:
    - Messages published to a topic with no subscription are dropped.
    - Handler exceptions are logged; they never stop the dispatcher.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field

from dart_enrichment.application.interfaces.message_bus import (
    BusMessage,
    MessageBus,
    MessageHandler,
)

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    topic: str
    group: str
    handler: MessageHandler
    queue: asyncio.Queue[BusMessage] = field(default_factory=asyncio.Queue)
    dispatcher: asyncio.Task[None] | None = None
    inflight: set[asyncio.Task[None]] = field(default_factory=set)


class InMemoryMessageBus(MessageBus):
    """Asyncio queue-backed bus with per-group fan-out."""

    def __init__(self) -> None:
        self._subs: dict[tuple[str, str], _Subscription] = {}
        self._closed = False

    async def publish(
        self,
        topic: str,
        value: bytes | str,
        *,
        key: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if self._closed:
            raise RuntimeError("Message bus is closed.")
        payload = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        message = BusMessage(topic=topic, value=payload, key=key, headers=dict(headers or {}))
        targets = [sub for (t, _), sub in self._subs.items() if t == topic]
        if not targets:
            logger.debug("bus.publish.no_subscribers", extra={"topic": topic})
            return
        for sub in targets:
            sub.queue.put_nowait(message)

    async def subscribe(self, topic: str, *, group: str, handler: MessageHandler) -> None:
        if self._closed:
            raise RuntimeError("Message bus is closed.")
        if (topic, group) in self._subs:
            raise ValueError(f"Group {group!r} is already subscribed to {topic!r}.")
        sub = _Subscription(topic=topic, group=group, handler=handler)
        sub.dispatcher = asyncio.create_task(
            self._dispatch(sub), name=f"bus-dispatch:{topic}:{group}"
        )
        self._subs[(topic, group)] = sub
        logger.info("bus.subscribed", extra={"topic": topic, "group": group})

    async def drain(self) -> None:
        """Wait until every queued message has been handled."""
        for sub in list(self._subs.values()):
            await sub.queue.join()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subs = list(self._subs.values())
        self._subs.clear()
        for sub in subs:
            if sub.dispatcher is not None:
                sub.dispatcher.cancel()
            for task in list(sub.inflight):
                task.cancel()
        for sub in subs:
            pending = [t for t in (sub.dispatcher, *sub.inflight) if t is not None]
            for task in pending:
                with suppress(asyncio.CancelledError):
                    await task

    async def _dispatch(self, sub: _Subscription) -> None:
        while True:
            message = await sub.queue.get()
            task = asyncio.create_task(self._handle(sub, message))
            sub.inflight.add(task)
            task.add_done_callback(sub.inflight.discard)

    @staticmethod
    async def _handle(sub: _Subscription, message: BusMessage) -> None:
        try:
            await sub.handler(message)
        except Exception:  # noqa: BLE001
            logger.exception(
                "bus.handler_failed",
                extra={"topic": sub.topic, "group": sub.group},
            )
        finally:
            sub.queue.task_done()
