# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""In-process messaging."""

from __future__ import annotations

from .in_memory_bus import InMemoryMessageBus

__all__ = ["InMemoryMessageBus"]
