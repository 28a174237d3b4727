"""
Line framing for the signald socket: one JSON object per newline.
"""

import json
from typing import Any, Union

import pydantic

from signald_rest.errors import ProtocolError
from signald_rest.models.command import Command
from signald_rest.models.frame import DaemonFrame

ENCODING = "utf-8"
DELIMITER = b"\n"


def encode_command(command: Union[Command, dict[str, Any]]) -> bytes:
    """Serialize a command into a newline-terminated JSON line."""
    payload = command.to_wire() if isinstance(command, Command) else command
    return json.dumps(payload, ensure_ascii=False).encode(ENCODING) + DELIMITER


def decode_frame(line: bytes) -> DaemonFrame:
    """Parse one inbound line. Raises ProtocolError on anything but a JSON object."""
    text = line.decode(ENCODING, errors="replace").strip()
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Malformed frame: {e}", details={"line": text[:200]})
    if not isinstance(raw, dict):
        raise ProtocolError("Frame is not a JSON object", details={"line": text[:200]})
    try:
        return DaemonFrame.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ProtocolError(f"Invalid frame: {e.error_count()} field error(s)", details={"line": text[:200]})
