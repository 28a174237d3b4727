"""CLI: signald-rest serve"""

import logging

import click
import uvicorn
from rich.logging import RichHandler

from signald_rest.config import Settings


@click.command("serve")
@click.option("--socket-path", envvar="SIGNALD_SOCKET_PATH", default=None, help="signald socket path")
@click.option("--attachment-tmp-dir", envvar="SIGNALD_ATTACHMENT_TMP_DIR", default=None, help="Attachment tmp directory")
@click.option("--request-timeout", envvar="SIGNALD_REQUEST_TIMEOUT", default=None, type=float,
              help="Seconds to wait for a signald reply (default: no limit)")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8080, show_default=True, type=int)
@click.option("--log-level", default="info", show_default=True,
              type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False))
def serve(socket_path, attachment_tmp_dir, request_timeout, host, port, log_level):
    """Run the REST gateway."""
    from signald_rest.api import create_app

    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    settings = Settings.from_env(
        socket_path=socket_path,
        attachment_tmp_dir=attachment_tmp_dir,
        request_timeout=request_timeout,
    )
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None, log_level=log_level.lower())
