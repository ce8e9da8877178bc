"""Main CLI entry point for elearning-service management commands."""

import click

from elearning_service.cli.commands import realtime, scheduler, server
from elearning_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="elearning-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """E-learning service CLI.

    \b
    Command Groups:
      serve      Run the API server and deadline scheduler
      scheduler  Run deadline jobs once or preview their schedule
      realtime   Listen on the realtime notification channel

    \b
    Quick Start:
      elearning-service serve
      elearning-service scheduler sweep
      elearning-service scheduler next-runs --count 5
      elearning-service realtime listen --user-id 42
    """
    ctx.ensure_object(dict)
    setup_logging()


cli.add_command(server.serve)
cli.add_command(scheduler.scheduler)
cli.add_command(realtime.realtime)


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
