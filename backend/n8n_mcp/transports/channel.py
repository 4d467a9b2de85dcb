# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Duplex message channel shared by all transport adapters.

A transport pushes decoded inbound payloads through receive(); the bound
dispatcher answers through send(). Closing the channel closes the
dispatcher's connection context, so late replies are never written to a
connection that has already gone away.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from n8n_mcp.core.logging import get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[Any], Awaitable[None]]
CloseCallback = Callable[[], None]

_CLOSED = object()


class MessageChannel(ABC):
    """send(frame) / on_message(handler) / close()"""

    def __init__(self):
        self._handler: Optional[MessageHandler] = None
        self._close_callbacks: List[CloseCallback] = []
        self.closed = False

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    def on_close(self, callback: CloseCallback) -> None:
        self._close_callbacks.append(callback)

    async def receive(self, payload: Any) -> None:
        """Hand an inbound payload to the registered handler"""
        if self.closed:
            logger.debug("Dropping inbound message on closed channel")
            return
        if self._handler is None:
            raise RuntimeError("No message handler bound to channel")
        await self._handler(payload)

    async def send(self, frame: Any) -> None:
        if self.closed:
            logger.debug("Dropping outbound frame on closed channel")
            return
        await self._write(frame)

    @abstractmethod
    async def _write(self, frame: Any) -> None:
        ...

    def close(self) -> None:
        """Idempotent"""
        if self.closed:
            return
        self.closed = True
        for callback in self._close_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Channel close callback failed")
        self._close_callbacks.clear()


class BufferedChannel(MessageChannel):
    """Collects outbound frames for a single HTTP response"""

    def __init__(self):
        super().__init__()
        self.outbox: List[Any] = []

    async def _write(self, frame: Any) -> None:
        self.outbox.append(frame)


class StreamChannel(MessageChannel):
    """Queues outbound frames for a long-lived streaming response"""

    def __init__(self, maxsize: int = 0):
        super().__init__()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def _write(self, frame: Any) -> None:
        await self._queue.put(frame)

    async def next_frame(self, timeout: Optional[float] = None) -> Any:
        """
        Wait for the next frame.

        Raises:
            asyncio.TimeoutError: nothing arrived within timeout
            EOFError: channel closed and drained
        """
        if timeout is None:
            frame = await self._queue.get()
        else:
            frame = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if frame is _CLOSED:
            raise EOFError("channel closed")
        return frame

    async def frames(self) -> AsyncIterator[Any]:
        while True:
            try:
                yield await self.next_frame()
            except EOFError:
                return

    def close(self) -> None:
        was_closed = self.closed
        super().close()
        if not was_closed:
            self._queue.put_nowait(_CLOSED)


def bind(channel: MessageChannel, dispatcher, context) -> MessageChannel:
    """
    Wire a channel to a dispatcher for one connection context.

    Every inbound payload is dispatched and a reply (if any) is sent back on
    the same channel.
    """

    async def handle(payload: Any) -> None:
        reply = await dispatcher.dispatch_payload(payload, context)
        if reply is not None:
            await channel.send(reply)

    channel.on_message(handle)
    channel.on_close(context.close)
    return channel
