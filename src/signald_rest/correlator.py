"""
Response correlation over a single multiplexed signald connection.

- request/reply: a command's id is echoed in its reply frame; the caller
  suspends until that frame arrives.
- request/stream: frames nobody is waiting for go to every open
  subscription, in arrival order.

When the connection drops, every waiter and every subscription gets a
TransportError.
"""

import asyncio
import contextlib
import logging
from typing import Callable, Optional, Union

from signald_rest.errors import TransportError
from signald_rest.models.command import Command
from signald_rest.models.frame import DaemonFrame
from signald_rest.transport.unix import SocketTransport

logger = logging.getLogger(__name__)

FramePredicate = Callable[[DaemonFrame], bool]


class Subscription:
    """Ordered feed of uncorrelated frames. Iterate with ``async for``."""

    def __init__(self, correlator: "ResponseCorrelator", predicate: Optional[FramePredicate] = None):
        self._correlator = correlator
        self._predicate = predicate
        self._queue: asyncio.Queue[Union[DaemonFrame, TransportError]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, frame: DaemonFrame) -> None:
        if self._closed:
            return
        if self._predicate is not None and not self._predicate(frame):
            return
        self._queue.put_nowait(frame)

    def fail(self, error: TransportError) -> None:
        if not self._closed:
            self._queue.put_nowait(error)

    async def next(self) -> DaemonFrame:
        item = await self._queue.get()
        if isinstance(item, TransportError):
            raise item
        return item

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._correlator._discard(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> DaemonFrame:
        if self._closed:
            raise StopAsyncIteration
        return await self.next()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ResponseCorrelator:
    def __init__(self, transport: SocketTransport):
        self._transport = transport
        self._pending: dict[str, asyncio.Future[DaemonFrame]] = {}
        self._subscriptions: list[Subscription] = []
        transport.add_frame_handler(self._route)
        transport.add_disconnect_handler(self._fail_all)

    @property
    def transport(self) -> SocketTransport:
        return self._transport

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def request(self, command: Command, timeout: Optional[float] = None) -> DaemonFrame:
        """Send a command and wait for the frame that echoes its id."""
        if command.id in self._pending:
            raise RuntimeError(f"A reply for request {command.id} is already awaited")
        future: asyncio.Future[DaemonFrame] = asyncio.get_running_loop().create_future()
        self._pending[command.id] = future
        try:
            await self._transport.send(command)
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Timeout waiting for {command.type} reply ({command.id})")
        finally:
            if self._pending.get(command.id) is future:
                del self._pending[command.id]

    def subscribe(self, predicate: Optional[FramePredicate] = None) -> Subscription:
        subscription = Subscription(self, predicate)
        self._subscriptions.append(subscription)
        return subscription

    def _discard(self, subscription: Subscription) -> None:
        with contextlib.suppress(ValueError):
            self._subscriptions.remove(subscription)

    def _route(self, frame: DaemonFrame) -> None:
        if frame.id is not None:
            future = self._pending.pop(frame.id, None)
            if future is not None:
                if not future.done():
                    future.set_result(frame)
                return
        if not self._subscriptions:
            logger.debug("Dropping uncorrelated %s frame (id=%s)", frame.type, frame.id)
            return
        for subscription in list(self._subscriptions):
            subscription.offer(frame)

    def _fail_all(self, reason: TransportError) -> None:
        pending, self._pending = self._pending, {}
        for request_id, future in pending.items():
            if not future.done():
                future.set_exception(TransportError(f"{reason} (request {request_id})"))
        for subscription in list(self._subscriptions):
            subscription.fail(TransportError(str(reason)))
