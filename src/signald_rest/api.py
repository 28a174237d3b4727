"""
HTTP layer — FastAPI routes over the signald bridge.

Every gateway error answers 400 with ``{"error": "..."}``. Message sends are
not transactional: a failure part-way through a multi-recipient send leaves
the earlier recipients delivered.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from signald_rest.config import Settings
from signald_rest.dispatcher import MessageDispatcher
from signald_rest.errors import DaemonError, SignaldRestError, ValidationError
from signald_rest.groups import decode_group_id, encode_group_id, to_group_entry
from signald_rest.linking import LinkingSessions
from signald_rest.models.group import GroupEntry
from signald_rest.models.requests import (
    About,
    CreateGroupRequest,
    CreateGroupResponse,
    RegisterNumberRequest,
    SendMessageV1,
    SendMessageV2,
    VerifyNumberSettings,
)
from signald_rest.receive import ReceiveStreamAdapter
from signald_rest.signald import Signald

logger = logging.getLogger(__name__)

SUPPORTED_API_VERSIONS = ["v1", "v2"]
BUILD_NR = 2
INVALID_REQUEST = "Couldn't process request - invalid request"


class Gateway:
    """Everything the routes share: one daemon client plus the linking sessions."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.signald = Signald(
            settings.socket_path,
            request_timeout=settings.request_timeout,
            read_limit=settings.read_limit,
        )
        self.dispatcher = MessageDispatcher(self.signald, settings.attachment_tmp_dir)
        self.receiver = ReceiveStreamAdapter(self.signald)
        self.links = LinkingSessions(settings.socket_path, read_limit=settings.read_limit)

    async def close(self) -> None:
        await self.links.close_all()
        await self.signald.disconnect()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    gateway = Gateway(settings or Settings.from_env())

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Started signald REST API (socket: %s)", gateway.settings.socket_path)
        yield
        await gateway.close()

    app = FastAPI(
        title="Signal Cli REST API",
        description="signald exposed as a REST API.",
        version="1.0",
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    @app.exception_handler(SignaldRestError)
    async def gateway_error(_request: Request, exc: SignaldRestError) -> JSONResponse:
        if not isinstance(exc, (ValidationError, DaemonError)):
            logger.error("%s: %s", exc.code, exc)
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.error("Invalid request: %s", exc.errors())
        return _error(400, INVALID_REQUEST)

    @app.exception_handler(TimeoutError)
    async def timed_out(_request: Request, exc: TimeoutError) -> JSONResponse:
        return _error(504, str(exc))

    @app.get("/v1/about", response_model=About, tags=["General"])
    async def about() -> About:
        """Lists the supported API versions and the internal build nr."""
        return About(versions=SUPPORTED_API_VERSIONS, build=BUILD_NR)

    @app.post("/v1/register/{number}", status_code=201, tags=["Devices"])
    async def register_number(number: str, req: Optional[RegisterNumberRequest] = None) -> None:
        """Register a phone number with the signal network."""
        req = req or RegisterNumberRequest()
        await gateway.signald.register(number, use_voice=req.use_voice)

    @app.post("/v1/register/{number}/verify/{token}", status_code=201, tags=["Devices"])
    async def verify_number(number: str, token: str, req: Optional[VerifyNumberSettings] = None) -> None:
        """Verify a registered phone number with the signal network."""
        req = req or VerifyNumberSettings()
        await gateway.signald.verify(number, token, pin=req.pin)

    @app.post("/v1/send", status_code=201, tags=["Messages"], deprecated=True)
    async def send_v1(req: SendMessageV1) -> None:
        """Send a signal message. With is_group the single recipient is a group id."""
        attachments = [req.base64_attachment] if req.base64_attachment else []
        await gateway.dispatcher.send_message(
            req.number, req.message, req.recipients, attachments, is_group=req.is_group,
        )

    @app.post("/v2/send", status_code=201, tags=["Messages"])
    async def send_v2(req: SendMessageV2) -> None:
        """Send a signal message to numbers or to ``group.`` ids, never both at once.

        Recipients are sent to one by one; if one fails, the ones before it
        have already received the message.
        """
        if not req.recipients:
            raise ValidationError("Couldn't process request - please provide at least one recipient")
        await gateway.dispatcher.send_message(req.number, req.message, req.recipients, req.base64_attachments)

    @app.get("/v1/receive/{number}", tags=["Messages"])
    async def receive(number: str, timeout: Optional[float] = Query(default=None, gt=0)) -> list[dict[str, Any]]:
        """Receive the pending Signal messages for a number."""
        frames = await gateway.receiver.receive(number, timeout=timeout)
        return [frame.model_dump(exclude_none=True) for frame in frames]

    @app.post("/v1/groups/{number}", status_code=201, response_model=CreateGroupResponse, tags=["Groups"])
    async def create_group(number: str, req: CreateGroupRequest) -> CreateGroupResponse:
        """Create a new Signal Group with the specified members."""
        await gateway.signald.create_group(number, req.name, req.members)
        for group in await gateway.signald.list_groups(number):
            if group.name == req.name:
                return CreateGroupResponse(id=encode_group_id(group.group_id))
        raise DaemonError(f"Group {req.name!r} was not found after creating it")

    @app.get("/v1/groups/{number}", response_model=list[GroupEntry], tags=["Groups"])
    async def get_groups(number: str) -> list[GroupEntry]:
        """List all Signal Groups."""
        return [to_group_entry(group, number) for group in await gateway.signald.list_groups(number)]

    @app.delete("/v1/groups/{number}/{groupid:path}", tags=["Groups"])
    async def delete_group(number: str, groupid: str) -> None:
        """Leave a Signal Group."""
        if not groupid:
            raise ValidationError("Please specify a group id")
        await gateway.signald.leave_group(number, decode_group_id(groupid))

    @app.get("/v1/link", tags=["Devices"], response_class=Response)
    async def link(background_tasks: BackgroundTasks, device_name: str = "") -> Response:
        """Link a device: returns the QR code to scan. The link outcome is only logged."""
        session = gateway.links.create(device_name)
        png = await session.start()
        background_tasks.add_task(session.confirm)
        return Response(content=png, media_type="image/png")

    return app
