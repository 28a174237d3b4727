"""
signald-rest — signald's Unix socket protocol as a REST API.

Bridges signald's asynchronous, line-delimited JSON protocol to plain
request/response HTTP calls.
"""

from signald_rest.signald import Signald
from signald_rest.config import Settings
from signald_rest.dispatcher import MessageDispatcher
from signald_rest.receive import ReceiveStreamAdapter
from signald_rest.linking import LinkingSession, LinkingSessions
from signald_rest.groups import encode_group_id, decode_group_id
from signald_rest.errors import (
    SignaldRestError,
    ValidationError,
    InvalidGroupIdError,
    InvalidAttachmentError,
    TransportError,
    ProtocolError,
    DaemonError,
)

__version__ = "0.1.0"
__all__ = [
    "Signald",
    "Settings",
    "MessageDispatcher",
    "ReceiveStreamAdapter",
    "LinkingSession",
    "LinkingSessions",
    "encode_group_id",
    "decode_group_id",
    "SignaldRestError",
    "ValidationError",
    "InvalidGroupIdError",
    "InvalidAttachmentError",
    "TransportError",
    "ProtocolError",
    "DaemonError",
]
