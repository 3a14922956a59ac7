"""Options shared by the commands talking to the panel."""

from typing import Any, Callable

import click

from ..command import parse_pin

DEFAULT_SERIAL_TTY = "/dev/ttyUSB0"
DEFAULT_PIN = "0000"


def validate_pin(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        parse_pin(value)
    except ValueError:
        raise click.BadParameter("must be 4 hex digits, e.g. 1234")
    return value


serial_tty_option = click.option(
    "--serial-tty", default=DEFAULT_SERIAL_TTY, envvar="SERIAL_PORT", show_default=True
)

pin_option = click.option(
    "--pin",
    default=DEFAULT_PIN,
    envvar="PIN",
    callback=validate_pin,
    help="User code sent with arm and disarm requests",
)


def panel_options(f: Callable[..., Any]) -> Callable[..., Any]:
    return serial_tty_option(pin_option(f))
