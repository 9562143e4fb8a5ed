"""Shared fixtures for perfolio tests.

Provides the golden document and small factories for building
PortfolioState instances without going through the parser.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from perfolio.domain.models import Account, PortfolioState, Price, Security, Transaction
from perfolio.ingestion import DocumentParser
from perfolio.system.config import IngestionConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def golden_path() -> Path:
    """Path of the golden document (one security, deposit, buy, partial sell)."""
    return FIXTURES_DIR / "golden.xml"


@pytest.fixture
def golden_xml(golden_path: Path) -> str:
    return golden_path.read_text(encoding="utf-8")


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    return IngestionConfig(default_currency="EUR", unknown_transaction_types="warn")


@pytest.fixture
def golden_state(golden_xml: str, ingestion_config: IngestionConfig) -> PortfolioState:
    return DocumentParser(ingestion_config).parse(golden_xml)


@pytest.fixture
def make_transaction():
    """Factory for transactions; amounts and shares are real magnitudes."""
    counter = {"n": 0}

    def _make(
        day: date,
        tx_type: str,
        amount: str,
        security_uuid: Optional[str] = None,
        shares: Optional[str] = None,
        uuid: Optional[str] = None,
    ) -> Transaction:
        counter["n"] += 1
        return Transaction(
            uuid=uuid or f"tx-{counter['n']}",
            date=datetime(day.year, day.month, day.day),
            type=tx_type,
            amount=Decimal(amount),
            currency_code="EUR",
            security_uuid=security_uuid,
            shares=Decimal(shares) if shares is not None else None,
        )

    return _make


@pytest.fixture
def make_security():
    """Factory for securities with a ``{date: price}`` series."""

    def _make(uuid: str, prices: Optional[dict[date, str]] = None, isin: str = "") -> Security:
        series = tuple(Price(date=day, value=Decimal(value)) for day, value in sorted((prices or {}).items()))
        return Security(uuid=uuid, name=uuid.upper(), isin=isin, currency_code="EUR", prices=series)

    return _make


@pytest.fixture
def make_state():
    """Factory for a PortfolioState holding all transactions in one account."""

    def _make(transactions: list[Transaction], securities: Optional[list[Security]] = None) -> PortfolioState:
        return PortfolioState(
            base_currency="EUR",
            securities={security.uuid: security for security in securities or []},
            transactions={tx.uuid: tx for tx in transactions},
            accounts=(Account(uuid="acc", name="Account", transaction_ids=tuple(tx.uuid for tx in transactions)),),
        )

    return _make
