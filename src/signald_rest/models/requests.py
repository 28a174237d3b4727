"""
HTTP request and response bodies.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterNumberRequest(BaseModel):
    use_voice: bool = False


class VerifyNumberSettings(BaseModel):
    pin: str = ""


class SendMessageV1(BaseModel):
    """Deprecated single-attachment send; is_group selects group mode explicitly."""
    number: str
    recipients: list[str] = Field(default_factory=list)
    message: str = ""
    base64_attachment: Optional[str] = None
    is_group: bool = False


class SendMessageV2(BaseModel):
    """Recipients prefixed with ``group.`` are group targets."""
    number: str
    recipients: list[str] = Field(default_factory=list)
    message: str = ""
    base64_attachments: list[str] = Field(default_factory=list)


class CreateGroupRequest(BaseModel):
    name: str
    members: list[str] = Field(default_factory=list)


class CreateGroupResponse(BaseModel):
    id: str


class About(BaseModel):
    versions: list[str]
    build: int


class Error(BaseModel):
    error: str
