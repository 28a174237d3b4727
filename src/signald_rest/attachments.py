"""
Attachment materialization.

signald reads attachments from disk, so every base64 payload from the caller
becomes a temporary file for the lifetime of one send operation.
"""

import base64
import binascii
import contextlib
import logging
import os
import tempfile
from typing import Iterator, Sequence

import filetype

from signald_rest.errors import InvalidAttachmentError

logger = logging.getLogger(__name__)

TMP_FILE_PREFIX = "signald-rest-api-"


def decode_attachment(blob: str) -> tuple[bytes, str]:
    """Decode one base64 payload and sniff its file extension."""
    try:
        data = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAttachmentError(str(e))
    kind = filetype.guess(data)
    if kind is None:
        raise InvalidAttachmentError("Couldn't detect the attachment's file type")
    return data, kind.extension


def write_attachment(data: bytes, extension: str, tmp_dir: str) -> str:
    """Write bytes to a new uniquely named file and flush them to disk. Returns the path."""
    with tempfile.NamedTemporaryFile(
        mode="wb", dir=tmp_dir, prefix=TMP_FILE_PREFIX, suffix=f".{extension}", delete=False,
    ) as f:
        try:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        except OSError:
            _remove(f.name)
            raise
        return f.name


@contextlib.contextmanager
def materialize_attachments(blobs: Sequence[str], tmp_dir: str) -> Iterator[list[str]]:
    """Yield temp file paths for the given payloads, in order.

    All files created here are removed on exit, whatever the outcome.
    """
    paths: list[str] = []
    try:
        for blob in blobs:
            data, extension = decode_attachment(blob)
            try:
                paths.append(write_attachment(data, extension, tmp_dir))
            except OSError as e:
                raise InvalidAttachmentError(f"Couldn't store attachment: {e}") from e
        yield paths
    finally:
        for path in paths:
            _remove(path)


def _remove(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Couldn't remove attachment %s: %s", path, e)
