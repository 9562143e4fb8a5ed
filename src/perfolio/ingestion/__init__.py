"""Document ingestion: raw text to PortfolioState."""

from perfolio.ingestion.parser import DocumentParser
from perfolio.ingestion.resolver import SecurityReferenceResolver
from perfolio.ingestion.summary import DocumentSummary, summarize

__all__ = [
    "DocumentParser",
    "DocumentSummary",
    "SecurityReferenceResolver",
    "summarize",
]
