"""perfolio command line entry point."""

from pathlib import Path
from typing import Literal, Optional, cast

import click

from perfolio import __version__
from perfolio.cli.commands import inspect_command, kpi_command, returns_command, valuate_command
from perfolio.system import LoggerFactory, get_system_config, reload_system_config


@click.group()
@click.version_option(__version__, prog_name="perfolio")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override logging level (DEBUG shows index build and timing details)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file (default: config/perfolio.yaml, then ~/.perfolio/perfolio.yaml)",
)
def cli(log_level: Optional[str], config_path: Optional[Path]):
    """Portfolio valuation and performance analysis for exported portfolio documents."""
    system_config = reload_system_config(config_path) if config_path else get_system_config()

    if log_level:
        # Type cast since click already validated the choice
        level = cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], log_level.upper())
        system_config.logging.level = level

    LoggerFactory.configure(system_config.logging.to_logger_config())


cli.add_command(inspect_command)
cli.add_command(valuate_command)
cli.add_command(kpi_command)
cli.add_command(returns_command)


if __name__ == "__main__":
    cli()
