"""Inspection summary of an ingested document."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from perfolio.domain.models import PortfolioState


@dataclass(frozen=True)
class DocumentSummary:
    """Counts and date span of a PortfolioState, for display."""

    base_currency: str
    securities: int
    securities_with_prices: int
    accounts: int
    portfolios: int
    transactions: int
    transactions_by_type: dict[str, int] = field(default_factory=dict)
    taxonomies: list[str] = field(default_factory=list)
    first_transaction: Optional[date] = None
    last_transaction: Optional[date] = None
    unresolved_security_references: int = 0


def summarize(state: PortfolioState) -> DocumentSummary:
    transactions = state.all_transactions()
    days = [tx.day for tx in transactions]
    by_type = Counter(tx.type for tx in transactions)

    return DocumentSummary(
        base_currency=state.base_currency,
        securities=len(state.securities),
        securities_with_prices=sum(1 for security in state.securities.values() if security.prices),
        accounts=len(state.accounts),
        portfolios=len(state.portfolios),
        transactions=len(transactions),
        transactions_by_type=dict(sorted(by_type.items())),
        taxonomies=[node.name for node in state.taxonomies],
        first_transaction=min(days) if days else None,
        last_transaction=max(days) if days else None,
        unresolved_security_references=sum(
            1 for tx in transactions if tx.shares is not None and tx.security_uuid is None
        ),
    )
