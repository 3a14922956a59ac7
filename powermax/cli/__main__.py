import logging

import click

from .. import __version__
from .events import events
from .run import run
from .send_command import send_command

LOG_LEVELS = ["error", "warning", "info", "debug"]
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOGGER = logging.getLogger(__name__)


@click.group()
@click.option(
    "--log-level", type=click.Choice(LOG_LEVELS), default="info", envvar="LOG_LEVEL"
)
@click.option(
    "--log-file", type=click.Path(dir_okay=False), envvar="LOG_FILE",
    help="Also write the log to this file",
)
def cli(log_level: str, log_file: str | None) -> None:
    level = getattr(logging, log_level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
    if log_file is not None:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)
    _LOGGER.debug("powermax-mqtt version: %s", get_version())


@cli.command()
def version() -> None:
    """Print installed package version."""
    print(get_version())


def get_version() -> str:
    return __version__


cli.add_command(run)
cli.add_command(events)
cli.add_command(send_command)

if __name__ == "__main__":
    cli()
