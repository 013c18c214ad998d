# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Per-session event channel.

    events = EventChannel()
    events.on("statusUpdate", handler)        # persistent
    events.once("disconnected", cleanup)      # removed before first call
    events.emit("statusUpdate", status)

Handlers may be plain callables or coroutine functions; coroutines are
scheduled on the running loop.  A failing handler is logged and does not
stop the others.
"""

import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)

CONNECTED = "connected"
DISCONNECTED = "disconnected"
STATUS_UPDATE = "statusUpdate"


class EventChannel:
    def __init__(self):
        self._listeners: dict[str, list[tuple[object, bool]]] = {}
        self._tasks: set[asyncio.Task] = set()

    def on(self, event: str, handler):
        self._listeners.setdefault(event, []).append((handler, False))
        return handler

    def once(self, event: str, handler):
        self._listeners.setdefault(event, []).append((handler, True))
        return handler

    def off(self, event: str, handler=None):
        """Remove one handler, or every handler for *event*."""
        if handler is None:
            self._listeners.pop(event, None)
            return
        self._listeners[event] = [
            (h, one_shot) for h, one_shot in self._listeners.get(event, []) if h is not handler
        ]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args) -> int:
        """Call every handler for *event*.  Returns the number of handlers called."""
        listeners = self._listeners.get(event)
        if not listeners:
            return 0
        # One-shot handlers go before anything runs, so re-entrant emits skip them
        self._listeners[event] = [(h, one_shot) for h, one_shot in listeners if not one_shot]

        for handler, _ in listeners:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._task_done)
            except Exception:
                logger.exception("Listener for %s failed", event)
        return len(listeners)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async listener failed: %s", task.exception())

    def clear(self):
        self._listeners.clear()
