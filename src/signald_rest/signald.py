"""
signald client — one coroutine per daemon command.

The connection is opened lazily on first use and shared by every caller;
replies are matched to requests by id through the ResponseCorrelator.
"""

import logging
from typing import Optional

from signald_rest.correlator import ResponseCorrelator, Subscription
from signald_rest.errors import DaemonError
from signald_rest.models.command import (
    Address,
    AttachmentRef,
    Command,
    LeaveGroupCommand,
    LinkCommand,
    ListGroupsCommand,
    RegisterCommand,
    SendCommand,
    SubscribeCommand,
    UpdateGroupCommand,
    VerifyCommand,
)
from signald_rest.models.frame import DaemonFrame
from signald_rest.models.group import DaemonGroup, GroupList
from signald_rest.transport.unix import DEFAULT_READ_LIMIT, DEFAULT_SOCKET_PATH, SocketTransport

logger = logging.getLogger(__name__)


class Signald:
    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        request_timeout: Optional[float] = None,
        read_limit: int = DEFAULT_READ_LIMIT,
    ):
        self._transport = SocketTransport(socket_path, read_limit=read_limit)
        self._correlator = ResponseCorrelator(self._transport)
        self._request_timeout = request_timeout

    @property
    def transport(self) -> SocketTransport:
        return self._transport

    @property
    def correlator(self) -> ResponseCorrelator:
        return self._correlator

    @property
    def connected(self) -> bool:
        return self._transport.connected

    async def connect(self) -> None:
        await self._transport.connect()

    async def disconnect(self) -> None:
        await self._transport.disconnect()

    async def request(self, command: Command, timeout: Optional[float] = None) -> DaemonFrame:
        """Send a command and return its reply. Daemon-reported errors raise DaemonError."""
        await self._transport.connect()
        frame = await self._correlator.request(
            command, timeout=timeout if timeout is not None else self._request_timeout,
        )
        return _raise_for_error(command, frame)

    async def register(self, number: str, use_voice: bool = False, captcha: Optional[str] = None) -> DaemonFrame:
        """Start registration of a phone number (SMS or voice code)."""
        return await self.request(RegisterCommand(username=number, voice=use_voice, captcha=captcha or None))

    async def verify(self, number: str, code: str, pin: str = "") -> DaemonFrame:
        """Finish registration with the received code and optional registration lock pin."""
        return await self.request(VerifyCommand(username=number, code=code, pin=pin or None))

    async def send(
        self,
        number: str,
        message: str,
        recipient: Optional[str] = None,
        group_id: Optional[str] = None,
        attachments: Optional[list[str]] = None,
    ) -> DaemonFrame:
        """Send one message to an individual recipient or to one group (internal id)."""
        return await self.request(SendCommand(
            username=number,
            recipient_address=Address(number=recipient) if recipient else None,
            recipient_group_id=group_id or None,
            message_body=message,
            attachments=[AttachmentRef(filename=path) for path in attachments or []],
        ))

    async def list_groups(self, number: str) -> list[DaemonGroup]:
        """List the groups the number knows about."""
        frame = await self.request(ListGroupsCommand(username=number))
        return GroupList.model_validate(frame.data or {}).groups

    async def create_group(self, number: str, name: str, members: list[str]) -> DaemonFrame:
        return await self.request(UpdateGroupCommand(
            username=number,
            group_name=name,
            members=[Address(number=member) for member in members],
        ))

    async def leave_group(self, number: str, internal_group_id: str) -> DaemonFrame:
        return await self.request(LeaveGroupCommand(username=number, recipient_group_id=internal_group_id))

    async def link(self, device_name: str, request_id: str = "", timeout: Optional[float] = None) -> DaemonFrame:
        """Issue a link command; the reply carries the linking URI."""
        command = LinkCommand(device_name=device_name, id=request_id) if request_id else LinkCommand(device_name=device_name)
        return await self.request(command, timeout=timeout)

    def follow(self, request_id: str) -> Subscription:
        """Frames echoing ``request_id`` after its first reply was claimed.

        Open it before sending the command, so frames the daemon writes right
        behind the reply are kept.
        """
        return self._correlator.subscribe(lambda frame: frame.id == request_id)

    async def finish_link(self, device_name: str, request_id: str, updates: Subscription) -> DaemonFrame:
        """Reissue ``link`` with the id of the URI reply and wait for the outcome.

        ``updates`` is the ``follow`` subscription opened before the first
        link command. The outcome may already be queued there.
        """
        command = LinkCommand(device_name=device_name, id=request_id)
        await self._transport.send(command)
        return _raise_for_error(command, await updates.next())

    async def subscribe(self, number: str) -> Subscription:
        """Subscribe to incoming messages for a number.

        The returned subscription sees every uncorrelated frame that is not
        addressed to another number. The acknowledgement is awaited as the
        command's reply, so it never lands in a subscription.
        """
        def addressed_to_number(frame: DaemonFrame) -> bool:
            if isinstance(frame.data, dict) and frame.data.get("username") not in (None, number):
                return False
            return True

        subscription = self._correlator.subscribe(addressed_to_number)
        try:
            await self.request(SubscribeCommand(username=number))
        except BaseException:
            subscription.close()
            raise
        return subscription


def _raise_for_error(command: Command, frame: DaemonFrame) -> DaemonFrame:
    if frame.is_error:
        logger.info("signald rejected %s: %s", command.type, frame.error_message)
        raise DaemonError(frame.error_message, details={"type": frame.type, "data": frame.data})
    return frame
