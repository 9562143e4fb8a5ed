"""CLI command implementations."""

from perfolio.cli.commands.inspect import inspect_command
from perfolio.cli.commands.report import kpi_command, returns_command, valuate_command

__all__ = ["inspect_command", "kpi_command", "returns_command", "valuate_command"]
