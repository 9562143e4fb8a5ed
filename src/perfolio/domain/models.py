"""
Domain model for an ingested portfolio document.

All entities are frozen pydantic models: a PortfolioState is built once per
ingestion and never mutated afterwards.

Transactions live in one canonical store keyed by identity
(``PortfolioState.transactions``). Accounts and portfolios only hold
ordered identity lists, so a transaction mirrored between an account and a
portfolio exists exactly once.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TransactionType(str, Enum):
    """Known transaction types. Direction is defined by type, never by sign."""

    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    REMOVAL = "REMOVAL"
    WITHDRAWAL = "WITHDRAWAL"
    DIVIDEND = "DIVIDEND"
    INTEREST = "INTEREST"
    FEES = "FEES"
    TAXES = "TAXES"
    DELIVERY_INBOUND = "DELIVERY_INBOUND"
    DELIVERY_OUTBOUND = "DELIVERY_OUTBOUND"

    @classmethod
    def is_known(cls, value: str) -> bool:
        return value in cls._value2member_map_


# Cash effect
CASH_INFLOW_TYPES = frozenset(
    {TransactionType.DEPOSIT, TransactionType.SELL, TransactionType.DIVIDEND, TransactionType.INTEREST}
)
CASH_OUTFLOW_TYPES = frozenset(
    {
        TransactionType.WITHDRAWAL,
        TransactionType.REMOVAL,
        TransactionType.BUY,
        TransactionType.FEES,
        TransactionType.TAXES,
    }
)
NO_CASH_EFFECT_TYPES = frozenset({TransactionType.DELIVERY_INBOUND, TransactionType.DELIVERY_OUTBOUND})

# Share effect
SHARE_INFLOW_TYPES = frozenset({TransactionType.BUY, TransactionType.DELIVERY_INBOUND})
SHARE_OUTFLOW_TYPES = frozenset({TransactionType.SELL, TransactionType.DELIVERY_OUTBOUND})

# External capital movements
CAPITAL_INFLOW_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.DELIVERY_INBOUND})
CAPITAL_OUTFLOW_TYPES = frozenset(
    {TransactionType.REMOVAL, TransactionType.WITHDRAWAL, TransactionType.DELIVERY_OUTBOUND}
)


class Price(BaseModel):
    """One entry of a security's price series (real magnitude, not scaled)."""

    model_config = ConfigDict(frozen=True)

    date: date
    value: Decimal


class Security(BaseModel):
    """A tradable instrument with its ascending, one-per-date price series."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    name: str
    isin: str = ""
    ticker_symbol: Optional[str] = None
    currency_code: str
    prices: tuple[Price, ...] = ()

    @model_validator(mode="after")
    def _check_price_order(self) -> "Security":
        for previous, current in zip(self.prices, self.prices[1:]):
            if current.date <= previous.date:
                raise ValueError(
                    f"Price series of security {self.uuid} is not strictly ascending "
                    f"({previous.date} followed by {current.date})"
                )
        return self


class CrossEntry(BaseModel):
    """Link from one side of a double-entry transaction to its counterpart."""

    model_config = ConfigDict(frozen=True)

    kind: Optional[str] = None
    portfolio_reference: Optional[str] = None
    reference: Optional[str] = None
    amount: Optional[Decimal] = None
    currency_code: Optional[str] = None


class Transaction(BaseModel):
    """
    A single cash or security movement.

    ``type`` keeps the raw tag so that types outside TransactionType survive
    ingestion; ``amount`` and ``shares`` are always non-negative.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str
    date: datetime
    type: str
    amount: Decimal = Field(ge=0)
    currency_code: str
    security_uuid: Optional[str] = None
    shares: Optional[Decimal] = Field(default=None, ge=0)
    note: Optional[str] = None
    cross_entry: Optional[CrossEntry] = None

    @field_validator("date")
    @classmethod
    def _drop_offset(cls, value: datetime) -> datetime:
        # Wall-clock time as written; UTC offsets are dropped
        return value.replace(tzinfo=None)

    @property
    def day(self) -> date:
        """Calendar date of the transaction; time of day is never significant."""
        return self.date.date()

    @property
    def kind(self) -> Optional[TransactionType]:
        """Known type, or None for tags outside the vocabulary."""
        if TransactionType.is_known(self.type):
            return TransactionType(self.type)
        return None


class Account(BaseModel):
    """Cash account: a view over the canonical transaction store."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    name: str
    transaction_ids: tuple[str, ...] = ()


class Portfolio(BaseModel):
    """Securities depot: a view over the canonical transaction store."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    name: str
    transaction_ids: tuple[str, ...] = ()


class TaxonomyAssignment(BaseModel):
    """Leaf payload assigning a security to a category."""

    model_config = ConfigDict(frozen=True)

    security_uuid: str
    weight: Optional[int] = None


class TaxonomyNode(BaseModel):
    """Category (or assignment leaf) in a taxonomy tree."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: Optional[str] = None
    children: tuple["TaxonomyNode", ...] = ()
    data: Optional[TaxonomyAssignment] = None

    def walk(self):
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class PortfolioState(BaseModel):
    """
    The complete, immutable result of one ingestion.

    Attributes:
        base_currency: Currency every amount is expressed in
        securities: Security by UUID
        transactions: Canonical transaction store by UUID
        accounts: Cash accounts (identity views)
        portfolios: Securities depots (identity views)
        taxonomies: Taxonomy trees, one root per dimension
        security_taxonomy_map: ISIN -> categories the security is assigned to
    """

    model_config = ConfigDict(frozen=True)

    base_currency: str
    securities: dict[str, Security] = Field(default_factory=dict)
    transactions: dict[str, Transaction] = Field(default_factory=dict)
    accounts: tuple[Account, ...] = ()
    portfolios: tuple[Portfolio, ...] = ()
    taxonomies: tuple[TaxonomyNode, ...] = ()
    security_taxonomy_map: dict[str, tuple[TaxonomyNode, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_views(self) -> "PortfolioState":
        for container in (*self.accounts, *self.portfolios):
            missing = [tx_id for tx_id in container.transaction_ids if tx_id not in self.transactions]
            if missing:
                raise ValueError(f"{container.name!r} references unknown transactions: {missing}")
        return self

    def all_transactions(self) -> list[Transaction]:
        """Every transaction exactly once, in ingestion order."""
        return list(self.transactions.values())

    def account_transactions(self, account: Account) -> list[Transaction]:
        return [self.transactions[tx_id] for tx_id in account.transaction_ids]

    def portfolio_transactions(self, portfolio: Portfolio) -> list[Transaction]:
        return [self.transactions[tx_id] for tx_id in portfolio.transaction_ids]

    def first_transaction_date(self) -> Optional[date]:
        if not self.transactions:
            return None
        return min(tx.day for tx in self.transactions.values())
