"""
Outbound signald commands — one JSON object per line on the socket.

Field names follow the daemon's camelCase wire names through aliases; fields
left as None are omitted when serialized.
"""

import uuid
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def new_request_id() -> str:
    return str(uuid.uuid4())


class Address(BaseModel):
    number: str


class AttachmentRef(BaseModel):
    filename: str


class Command(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: str
    id: str = Field(default_factory=new_request_id)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RegisterCommand(Command):
    type: Literal["register"] = "register"
    username: str
    voice: bool = False
    captcha: Optional[str] = None


class VerifyCommand(Command):
    type: Literal["verify"] = "verify"
    username: str
    code: str
    pin: Optional[str] = None


class SendCommand(Command):
    type: Literal["send"] = "send"
    username: str
    recipient_address: Optional[Address] = Field(default=None, alias="recipientAddress")
    recipient_group_id: Optional[str] = Field(default=None, alias="recipientGroupId")
    message_body: str = Field(default="", alias="messageBody")
    attachments: list[AttachmentRef] = Field(default_factory=list)
    quote: Optional[dict[str, Any]] = None


class ListGroupsCommand(Command):
    type: Literal["list_groups"] = "list_groups"
    username: str


class UpdateGroupCommand(Command):
    """signald creates a group through update_group without a group id."""
    type: Literal["update_group"] = "update_group"
    username: str
    recipient_group_id: Optional[str] = Field(default=None, alias="recipientGroupId")
    group_name: str = Field(alias="groupName")
    members: list[Address] = Field(default_factory=list)
    avatar: Optional[str] = None


class LeaveGroupCommand(Command):
    type: Literal["leave_group"] = "leave_group"
    username: str
    recipient_group_id: str = Field(alias="recipientGroupId")


class LinkCommand(Command):
    type: Literal["link"] = "link"
    device_name: str = Field(alias="deviceName")


class SubscribeCommand(Command):
    type: Literal["subscribe"] = "subscribe"
    username: str
