"""CLI entrypoint for cc-demon."""

import logging

import rich_click as click

from cc_demon import __version__
from cc_demon.session.controllers import (
    SessionAskCommand,
    SessionCheckCommand,
    SessionCliController,
)

click.rich_click.USE_MARKDOWN = True
SESSION_CONTROLLER = SessionCliController()


@click.group()
@click.version_option(version=__version__, prog_name="cc-demon")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cc_demon(verbose: bool) -> None:
    """Claude gateway daemon CLI."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@cc_demon.group()
def session() -> None:
    """Persistent Claude session commands."""


@session.command("check")
@click.option("--model", default=None, help="Override CC_DEMON_MODEL for this run.")
def session_check(model: str | None) -> None:
    """Start the persistent session, report its identity and shut it down."""

    result = SESSION_CONTROLLER.check(SessionCheckCommand(model=model))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Session check failed.")


@session.command("ask")
@click.argument("prompts", nargs=-1, required=True)
@click.option("--model", default=None, help="Override CC_DEMON_MODEL for this run.")
def session_ask(prompts: tuple[str, ...], model: str | None) -> None:
    """Send prompts through the session queue and print responses in order."""

    result = SESSION_CONTROLLER.ask(SessionAskCommand(prompts=prompts, model=model))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("One or more prompts failed.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    cc_demon()
