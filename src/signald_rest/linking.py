"""
Device linking.

Linking spans two round trips on one connection:

1. ``link`` returns a ``tsdevice:`` URI. It is shown to the user as a QR
   code, which is the HTTP response.
2. ``link`` reissued with the same id resolves once the new device has
   accepted or rejected the link. This runs after the HTTP response is
   sent; its outcome only reaches the logs.

Every frame carrying the session id after the URI reply is queued from the
start, so an outcome signald writes before the second ``link`` is kept.

Each session owns its daemon connection and closes it when done.
"""

import enum
import io
import logging
import uuid
from typing import Callable, Optional

import qrcode
from PIL import Image

from signald_rest.correlator import Subscription
from signald_rest.errors import ProtocolError, SignaldRestError, ValidationError
from signald_rest.models.command import new_request_id
from signald_rest.models.frame import DaemonFrame
from signald_rest.signald import Signald
from signald_rest.transport.unix import DEFAULT_READ_LIMIT

logger = logging.getLogger(__name__)

QR_SIZE = 256


def render_qr_png(text: str, size: int = QR_SIZE) -> bytes:
    """Encode text as a borderless, square PNG QR code of ``size`` pixels."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=1,
        border=0,
    )
    qr.add_data(text)
    qr.make(fit=True)
    qr.box_size = max(1, size // qr.modules_count)
    image = qr.make_image(fill_color="black", back_color="white").get_image().convert("L")
    if image.size != (size, size):
        image = image.resize((size, size), Image.Resampling.NEAREST)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


class LinkState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_URI = "awaiting_uri"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DONE = "done"


class LinkingSession:
    def __init__(self, signald: Signald, device_name: str, on_done: Optional[Callable[["LinkingSession"], None]] = None):
        self.token = str(uuid.uuid4())
        self.device_name = device_name
        self.state = LinkState.IDLE
        self.request_id: Optional[str] = None
        self.uri: Optional[str] = None
        self.outcome: Optional[DaemonFrame] = None
        self._signald = signald
        self._on_done = on_done
        self._updates: Optional[Subscription] = None

    async def start(self) -> bytes:
        """Request the linking URI and return it as a PNG QR code.

        On any failure the connection is closed before the error propagates.
        """
        if self.state is not LinkState.IDLE:
            raise RuntimeError(f"Linking session {self.token} already started")
        self.state = LinkState.AWAITING_URI
        self.request_id = new_request_id()
        self._updates = self._signald.follow(self.request_id)
        try:
            if not self._signald.connected:
                await self._signald.connect()
            frame = await self._signald.link(self.device_name, request_id=self.request_id)
            uri = frame.data.get("uri") if isinstance(frame.data, dict) else None
            if not uri:
                raise ProtocolError(f"No linking URI in {frame.type or 'untyped'} reply")
            self.uri = uri
            png = render_qr_png(uri)
        except BaseException:
            await self._finish()
            raise
        self.state = LinkState.AWAITING_CONFIRMATION
        logger.info("Linking %r: waiting for the device to scan the code", self.device_name)
        return png

    async def confirm(self) -> None:
        """Wait for the link outcome, log it and close the connection.

        Meant to run in the background; errors are logged, never raised.
        """
        if self.state is not LinkState.AWAITING_CONFIRMATION or self._updates is None:
            logger.warning("Linking session %s is not awaiting confirmation (%s)", self.token, self.state.value)
            return
        try:
            self.outcome = await self._signald.finish_link(self.device_name, self.request_id, self._updates)
            logger.info("Linking %r finished: %s", self.device_name, self.outcome.type)
        except (SignaldRestError, TimeoutError) as e:
            logger.error("Linking %r failed: %s", self.device_name, e)
        except Exception:
            logger.exception("Linking %r failed", self.device_name)
        finally:
            await self._finish()

    async def close(self) -> None:
        await self._finish()

    async def _finish(self) -> None:
        self.state = LinkState.DONE
        # disconnect first: it fails a confirm() still waiting on the updates
        await self._signald.disconnect()
        if self._updates is not None:
            self._updates.close()
        if self._on_done is not None:
            self._on_done(self)


class LinkingSessions:
    """Live linking sessions by token, each on its own connection."""

    def __init__(self, socket_path: str, read_limit: int = DEFAULT_READ_LIMIT):
        self._socket_path = socket_path
        self._read_limit = read_limit
        self._sessions: dict[str, LinkingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, token: str) -> Optional[LinkingSession]:
        return self._sessions.get(token)

    def create(self, device_name: str) -> LinkingSession:
        if not device_name:
            raise ValidationError("Please provide a name for the device")
        signald = Signald(self._socket_path, read_limit=self._read_limit)
        session = LinkingSession(signald, device_name, on_done=self._discard)
        self._sessions[session.token] = session
        return session

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await session.close()

    def _discard(self, session: LinkingSession) -> None:
        self._sessions.pop(session.token, None)
