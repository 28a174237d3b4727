"""
Inbound signald frames.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

ERROR_TYPES = {"error", "unexpected_error"}


class DaemonFrame(BaseModel):
    """One decoded line from the daemon. Unknown keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: str = ""
    data: Optional[Any] = None
    done: bool = False

    @property
    def is_error(self) -> bool:
        return self.type in ERROR_TYPES or self.type.endswith("_error")

    @property
    def error_message(self) -> str:
        if isinstance(self.data, dict):
            for key in ("message", "error"):
                if self.data.get(key):
                    return str(self.data[key])
        return self.type
