"""
Gateway settings — defaults, environment overrides.
"""

import os
from typing import Any, Optional

from pydantic import BaseModel

from signald_rest.transport.unix import DEFAULT_READ_LIMIT, DEFAULT_SOCKET_PATH

DEFAULT_ATTACHMENT_TMP_DIR = "/tmp/"

ENV_VARS = {
    "socket_path": "SIGNALD_SOCKET_PATH",
    "attachment_tmp_dir": "SIGNALD_ATTACHMENT_TMP_DIR",
    "request_timeout": "SIGNALD_REQUEST_TIMEOUT",
}


class Settings(BaseModel):
    socket_path: str = DEFAULT_SOCKET_PATH
    attachment_tmp_dir: str = DEFAULT_ATTACHMENT_TMP_DIR
    # None waits for a daemon reply indefinitely
    request_timeout: Optional[float] = None
    read_limit: int = DEFAULT_READ_LIMIT

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        """Build settings from SIGNALD_* variables; explicit non-None overrides win."""
        values: dict[str, Any] = {}
        for field, var in ENV_VARS.items():
            if os.environ.get(var):
                values[field] = os.environ[var]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
