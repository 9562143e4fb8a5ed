"""Helpers shared by CLI commands."""

import sys
from pathlib import Path

from rich.console import Console

from perfolio.domain.errors import SchemaValidationError
from perfolio.domain.models import PortfolioState
from perfolio.ingestion import DocumentParser
from perfolio.system import get_system_config

DATE_FORMATS = ["%Y-%m-%d"]


def load_state(document_path: Path, console: Console) -> PortfolioState:
    """Read and parse a document; exits with status 1 on invalid input."""
    text = document_path.read_text(encoding="utf-8")
    try:
        return DocumentParser(get_system_config().ingestion).parse(text)
    except SchemaValidationError as e:
        console.print(f"[red]Invalid portfolio document: {document_path}[/red]")
        for issue in e.issues:
            console.print(f"  [dim]-[/dim] {issue}")
        sys.exit(1)


def format_pct(value: float) -> str:
    style = "green" if value >= 0 else "red"
    return f"[{style}]{value * 100:+.2f}%[/{style}]"


def format_money(value, currency: str = "") -> str:
    text = f"{float(value):,.2f}"
    return f"{text} {currency}".rstrip()
