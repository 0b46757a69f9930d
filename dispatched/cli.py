import click
import uvicorn

from . import __version__
from .config import (
    DEFAULT_DISPATCH_LOOKAHEAD, DEFAULT_FORWARD_TIMEOUT, DEFAULT_HOST, DEFAULT_PORT,
    DEFAULT_SCHEDULED_DELAY, LOG_FILE, LOG_LEVEL, ServerConfig,
)
from .main import create_app
from .utils import get_logger, setup_logging

logger = get_logger(__name__)


@click.group(help="dispatched: local webhook server for scheduled job delivery")
@click.version_option(__version__, prog_name="dispatched")
def cli():
    pass


@cli.command("listen", help="Start the local webhook server")
@click.option("--secret", envvar="DISPATCHED_SECRET", required=True,
              help="Secret for webhook validation (e.g. 'abc123' for local dev)")
@click.option("--forward", "forward_url", envvar="DISPATCHED_FORWARD_URL", required=True,
              help="URL to forward webhooks to (e.g. http://localhost:3000/webhook)")
@click.option("--port", default=DEFAULT_PORT, type=int, show_default=True,
              help="Port to run the server on")
@click.option("--host", default=DEFAULT_HOST, show_default=True, help="Interface to bind")
@click.option("--scheduled-delay", "--scheduledDelay", "scheduled_delay", default=DEFAULT_SCHEDULED_DELAY, type=float,
              show_default=True, help="Seconds added to scheduledFor before a job is picked up")
@click.option("--dispatch-lookahead", "dispatch_lookahead", default=DEFAULT_DISPATCH_LOOKAHEAD, type=float,
              show_default=True, help="Dispatch on create/update if due within this many seconds")
@click.option("--forward-timeout", "forward_timeout", default=DEFAULT_FORWARD_TIMEOUT, type=float,
              help="Timeout in seconds for the outbound POST (default: transport default)")
@click.option("--log-level", default=LOG_LEVEL, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-file", default=LOG_FILE, help="Also write JSON logs to this file")
def listen_cmd(secret, forward_url, port, host, scheduled_delay, dispatch_lookahead,
               forward_timeout, log_level, log_file):
    try:
        config = ServerConfig(
            webhook_secret=secret,
            forward_url=forward_url,
            port=port,
            host=host,
            scheduled_delay=scheduled_delay,
            dispatch_lookahead=dispatch_lookahead,
            forward_timeout=forward_timeout,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    setup_logging(log_level=log_level, log_file=log_file, enable_console=True)
    app = create_app(config)

    click.echo(f"Webhook server running on port {config.port}")
    click.echo(f"Forwarding webhooks to: {config.forward_url}")
    click.echo(f"Validating webhooks with secret: {config.masked_secret()}")
    click.echo(f"Scheduled delay: {config.scheduled_delay:g}s")
    logger.info("Starting server", **config.summary())

    uvicorn.run(app, host=config.host, port=config.port, log_level=log_level.lower(), access_log=False)


def main():
    cli()


if __name__ == "__main__":
    main()
