"""
Fake signald: an asyncio Unix socket server that records every command and
answers through a scriptable responder.
"""

import asyncio
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
import pytest_asyncio

Responder = Callable[[dict[str, Any]], Optional[list[Any]]]


def echo_ok(command: dict[str, Any]) -> list[Any]:
    """Default responder: acknowledge every command with a frame echoing its id."""
    return [{"id": command.get("id"), "type": command.get("type"), "data": {}}]


class FakeDaemon:
    def __init__(self, socket_path: str):
        self.socket_path = socket_path
        self.commands: list[dict[str, Any]] = []
        self.responder: Responder = echo_ok
        self.connections = 0
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: list[asyncio.StreamWriter] = []

    async def start(self) -> None:
        self._server = await asyncio.start_unix_server(self._handle, path=self.socket_path)

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    def commands_of(self, type_: str) -> list[dict[str, Any]]:
        return [c for c in self.commands if c.get("type") == type_]

    async def push(self, *frames: Any) -> None:
        """Write frames to every open connection, unprompted."""
        for writer in self._writers:
            for frame in frames:
                writer.write(self._encode(frame))
            await writer.drain()

    async def drop_connections(self) -> None:
        for writer in self._writers:
            writer.close()
        self._writers.clear()

    async def wait_for_commands(self, count: int, timeout: float = 2.0) -> None:
        async def _poll() -> None:
            while len(self.commands) < count:
                await asyncio.sleep(0.01)
        await asyncio.wait_for(_poll(), timeout)

    @staticmethod
    def _encode(frame: Any) -> bytes:
        if isinstance(frame, bytes):
            return frame if frame.endswith(b"\n") else frame + b"\n"
        return (json.dumps(frame) + "\n").encode()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                command = json.loads(line)
                self.commands.append(command)
                for frame in self.responder(command) or []:
                    writer.write(self._encode(frame))
                await writer.drain()
        except (ConnectionError, OSError):
            pass
        finally:
            if writer in self._writers:
                self._writers.remove(writer)
            writer.close()


@pytest.fixture
def socket_dir():
    # AF_UNIX paths are limited to ~100 bytes; pytest's tmp_path can be longer.
    path = tempfile.mkdtemp(prefix="sdr-")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest_asyncio.fixture
async def daemon(socket_dir):
    fake = FakeDaemon(str(socket_dir / "signald.sock"))
    await fake.start()
    yield fake
    await fake.stop()


@pytest.fixture
def attachment_dir(tmp_path):
    path = tmp_path / "attachments"
    path.mkdir()
    return path


@pytest_asyncio.fixture
async def signald(daemon):
    from signald_rest.signald import Signald

    client = Signald(daemon.socket_path, request_timeout=2.0)
    yield client
    await client.disconnect()
