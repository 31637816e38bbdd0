# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Message Bus Port (Application Layer).

Purpose:
    Minimal publish/subscribe contract the service consumes partner-company
    events through. A subscription is identified by (topic, group): each group
    receives every message published to the topic once.

Layer:
    application/interfaces
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class BusMessage:
    """One delivered message.

    Attributes:
        topic: Topic the message was published to.
        value: Raw payload bytes (JSON for every topic this service reads).
        key: Optional partitioning key.
        headers: Transport headers (e.g. ``correlation_id``).
    """

    topic: str
    value: bytes
    key: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)


MessageHandler = Callable[[BusMessage], Awaitable[object]]


class MessageBus(Protocol):
    """Publish/subscribe transport."""

    async def publish(
        self,
        topic: str,
        value: bytes | str,
        *,
        key: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Publish one message to ``topic``."""

    async def subscribe(self, topic: str, *, group: str, handler: MessageHandler) -> None:
        """Register ``handler`` for ``topic`` within consumer ``group``."""

    async def close(self) -> None:
        """Stop delivery and release resources."""
