"""
Unix socket connection to signald.

Outbound commands are written as newline-terminated JSON. A background read
loop decodes every inbound line and hands the frame to the registered frame
handlers, in the order the lines were read.
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional, Union

from signald_rest.errors import ProtocolError, TransportError
from signald_rest.models.command import Command
from signald_rest.models.frame import DaemonFrame
from signald_rest.transport.envelope import decode_frame, encode_command

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = "/var/run/signald/signald.sock"
DEFAULT_READ_LIMIT = 16 * 1024 * 1024

FrameHandler = Callable[[DaemonFrame], None]
DisconnectHandler = Callable[[TransportError], None]


class SocketTransport:
    def __init__(self, socket_path: str = DEFAULT_SOCKET_PATH, read_limit: int = DEFAULT_READ_LIMIT):
        self._socket_path = socket_path
        self._read_limit = read_limit
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task[None]] = None
        self._lock = asyncio.Lock()
        self._frame_handlers: list[FrameHandler] = []
        self._disconnect_handlers: list[DisconnectHandler] = []

    @property
    def socket_path(self) -> str:
        return self._socket_path

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    def add_frame_handler(self, handler: FrameHandler) -> Callable[[], None]:
        """Add a frame handler. Returns a cleanup function."""
        self._frame_handlers.append(handler)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._frame_handlers.remove(handler)
        return remove

    def add_disconnect_handler(self, handler: DisconnectHandler) -> Callable[[], None]:
        """Called once per lost or closed connection with the reason."""
        self._disconnect_handlers.append(handler)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._disconnect_handlers.remove(handler)
        return remove

    async def connect(self) -> None:
        """Open the socket and start the read loop. No-op when already connected."""
        async with self._lock:
            if self.connected:
                return
            try:
                reader, writer = await asyncio.open_unix_connection(self._socket_path, limit=self._read_limit)
            except OSError as e:
                raise TransportError(f"Couldn't connect to signald at {self._socket_path}: {e}") from e
            self._writer = writer
            self._read_task = asyncio.get_running_loop().create_task(self._read_loop(reader, writer))
            logger.debug("Connected to signald at %s", self._socket_path)

    async def disconnect(self) -> None:
        """Close the socket. Safe to call when not connected."""
        async with self._lock:
            task, self._read_task = self._read_task, None
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            writer = self._writer
            if writer is None:
                return
            self._closed(TransportError("Connection to signald closed"))
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            logger.debug("Disconnected from signald at %s", self._socket_path)

    async def send(self, command: Union[Command, dict[str, Any]]) -> str:
        """Write one command. Returns the request id it carries."""
        line = encode_command(command)
        request_id = command.id if isinstance(command, Command) else command.get("id", "")
        async with self._lock:
            writer = self._writer
            if writer is None or writer.is_closing():
                raise TransportError("Not connected to signald")
            try:
                writer.write(line)
                await writer.drain()
            except OSError as e:
                err = TransportError(f"Write to signald failed: {e}")
                self._closed(err)
                raise err from e
        return request_id

    async def _read_loop(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                try:
                    line = await reader.readline()
                except (OSError, ValueError) as e:
                    # ValueError: line longer than the reader limit
                    self._closed(TransportError(f"Read from signald failed: {e}"), writer)
                    return
                if not line:
                    self._closed(TransportError("Connection closed by signald"), writer)
                    return
                if not line.strip():
                    continue
                try:
                    frame = decode_frame(line)
                except ProtocolError as e:
                    logger.warning("Skipping frame: %s", e)
                    continue
                self._dispatch(frame)
        finally:
            if self._read_task is asyncio.current_task():
                self._read_task = None

    def _dispatch(self, frame: DaemonFrame) -> None:
        for handler in list(self._frame_handlers):
            try:
                handler(frame)
            except Exception:
                logger.exception("Frame handler failed for %s frame", frame.type)

    def _closed(self, reason: TransportError, owner: Optional[asyncio.StreamWriter] = None) -> None:
        # a read loop only tears down the connection it was started for
        writer = self._writer
        if writer is None or (owner is not None and owner is not writer):
            return
        self._writer = None
        writer.close()
        logger.info("signald connection down: %s", reason)
        for handler in list(self._disconnect_handlers):
            handler(reason)
