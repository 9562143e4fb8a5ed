"""
Document Parser.

Turns raw portfolio document text into an immutable PortfolioState:

1. Parse into the attributed tree (``tree.parse_tree``)
2. Validate the tree shape against the raw schema (``schema.RawDocument``)
3. Load securities and build the position index used for references
4. Map account and portfolio transactions into the canonical store,
   unscaling amounts, shares and prices
5. Parse taxonomy trees and index each security's categories by ISIN

Any structural problem is reported as a single SchemaValidationError listing
every issue found; nothing is returned in that case. Unresolvable security
references are tolerated and leave the reference unset.
"""

import time
import uuid as uuid_lib
from collections import Counter
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from perfolio.domain.errors import SchemaValidationError
from perfolio.domain.models import (
    Account,
    CrossEntry,
    Portfolio,
    PortfolioState,
    Price,
    Security,
    TaxonomyAssignment,
    TaxonomyNode,
    Transaction,
    TransactionType,
)
from perfolio.domain.scaling import unscale_amount, unscale_price, unscale_shares
from perfolio.ingestion.resolver import SecurityReferenceResolver
from perfolio.ingestion.schema import (
    RawClassification,
    RawClient,
    RawCrossEntry,
    RawDocument,
    RawSecurity,
    RawTaxonomy,
    RawTransaction,
)
from perfolio.ingestion.tree import parse_tree
from perfolio.system import LoggerFactory
from perfolio.system.config import IngestionConfig, get_system_config

ASSIGNMENT_NODE_NAME = "Security Assignment"


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"invalid date {value!r}") from exc


def _parse_date(value: str) -> date:
    return _parse_datetime(value).date()


def _format_validation_error(exc: ValidationError) -> list[str]:
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<document>"
        issues.append(f"{location}: {error['msg']}")
    return issues


class DocumentParser:
    """
    Stateless parser for portfolio documents.

    One instance can parse any number of documents; no state is kept between
    calls apart from the ingestion configuration.
    """

    def __init__(self, config: Optional[IngestionConfig] = None) -> None:
        """
        Initialize parser.

        Args:
            config: Ingestion policy (defaults to the system configuration)
        """
        self._config = config or get_system_config().ingestion
        self._logger = LoggerFactory.get_logger("ingestion.parser")

    def parse(self, text: str) -> PortfolioState:
        """
        Parse document text into a PortfolioState.

        Args:
            text: Raw document text

        Returns:
            Populated, immutable PortfolioState

        Raises:
            SchemaValidationError: If the document is malformed or does not
                have the expected shape
        """
        started = time.perf_counter()
        try:
            tree = parse_tree(text)
            document = self._validate(tree)
            state = self._build_state(document.client)
        except SchemaValidationError as exc:
            self._logger.error("ingestion.parse_failed", error=str(exc), issues=len(exc.issues))
            raise

        self._logger.info(
            "ingestion.parsed",
            securities=len(state.securities),
            transactions=len(state.transactions),
            accounts=len(state.accounts),
            portfolios=len(state.portfolios),
            taxonomies=len(state.taxonomies),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return state

    def _validate(self, tree: dict[str, Any]) -> RawDocument:
        try:
            return RawDocument.model_validate(tree)
        except ValidationError as exc:
            raise SchemaValidationError("Invalid portfolio document", _format_validation_error(exc)) from exc

    def _build_state(self, client: RawClient) -> PortfolioState:
        issues: list[str] = []

        raw_securities = (client.securities.security or []) if client.securities else []
        securities: dict[str, Security] = {}
        for raw_security in raw_securities:
            try:
                securities[raw_security.uuid] = self._map_security(raw_security)
            except ValueError as exc:
                issues.append(f"security {raw_security.uuid}: {exc}")

        # Position index covers every listed security, in document order
        resolver = SecurityReferenceResolver(raw.uuid for raw in raw_securities)

        transactions: dict[str, Transaction] = {}
        accounts: list[Account] = []
        portfolios: list[Portfolio] = []

        for raw_account in (client.accounts.account or []) if client.accounts else []:
            raw_items = raw_account.transactions.items if raw_account.transactions else None
            ids = self._register(raw_items or [], transactions, resolver, client.base_currency, issues)
            accounts.append(Account(uuid=raw_account.uuid, name=raw_account.name, transaction_ids=ids))

        # Portfolio copies of mirrored transactions replace the account copies
        for raw_portfolio in (client.portfolios.portfolio or []) if client.portfolios else []:
            raw_items = raw_portfolio.transactions.items if raw_portfolio.transactions else None
            ids = self._register(raw_items or [], transactions, resolver, client.base_currency, issues)
            portfolios.append(Portfolio(uuid=raw_portfolio.uuid, name=raw_portfolio.name, transaction_ids=ids))

        taxonomies: list[TaxonomyNode] = []
        for raw_taxonomy in (client.taxonomies.taxonomy or []) if client.taxonomies else []:
            try:
                node = self._parse_taxonomy(raw_taxonomy, resolver)
            except ValueError as exc:
                issues.append(f"taxonomy {raw_taxonomy.name or raw_taxonomy.id}: {exc}")
                continue
            if node is not None:
                taxonomies.append(node)

        if issues:
            raise SchemaValidationError("Invalid portfolio document", issues)

        self._apply_unknown_type_policy(transactions.values())

        return PortfolioState(
            base_currency=client.base_currency,
            securities=securities,
            transactions=transactions,
            accounts=tuple(accounts),
            portfolios=tuple(portfolios),
            taxonomies=tuple(taxonomies),
            security_taxonomy_map=self._build_taxonomy_map(taxonomies, securities),
        )

    def _map_security(self, raw: RawSecurity) -> Security:
        # Duplicate dates keep the last entry
        by_date: dict[date, Decimal] = {}
        for raw_price in (raw.prices.price or []) if raw.prices else []:
            by_date[_parse_date(raw_price.t)] = unscale_price(raw_price.v)

        return Security(
            uuid=raw.uuid,
            name=raw.name,
            isin=raw.isin or "",
            ticker_symbol=raw.ticker_symbol,
            currency_code=raw.currency_code or self._config.default_currency,
            prices=tuple(Price(date=day, value=value) for day, value in sorted(by_date.items())),
        )

    def _register(
        self,
        raw_items: list[RawTransaction],
        transactions: dict[str, Transaction],
        resolver: SecurityReferenceResolver,
        base_currency: str,
        issues: list[str],
    ) -> tuple[str, ...]:
        ids: dict[str, None] = {}
        for raw in raw_items:
            try:
                transactions[raw.uuid] = self._map_transaction(raw, resolver, base_currency)
            except ValueError as exc:
                issues.append(f"transaction {raw.uuid}: {exc}")
                continue
            ids[raw.uuid] = None
        return tuple(ids)

    def _map_transaction(
        self, raw: RawTransaction, resolver: SecurityReferenceResolver, base_currency: str
    ) -> Transaction:
        return Transaction(
            uuid=raw.uuid,
            date=_parse_datetime(raw.date),
            type=raw.type,
            amount=unscale_amount(raw.amount),
            currency_code=raw.currency_code or base_currency,
            security_uuid=resolver.resolve(raw.security.reference) if raw.security else None,
            shares=unscale_shares(raw.shares) if raw.shares else None,
            note=raw.note,
            cross_entry=self._map_cross_entry(raw.cross_entry) if raw.cross_entry else None,
        )

    @staticmethod
    def _map_cross_entry(raw: RawCrossEntry) -> CrossEntry:
        return CrossEntry(
            kind=raw.kind,
            portfolio_reference=raw.portfolio.reference if raw.portfolio else None,
            reference=raw.reference,
            amount=unscale_amount(raw.amount) if raw.amount else None,
            currency_code=raw.currency_code,
        )

    def _apply_unknown_type_policy(self, transactions: Any) -> None:
        unknown = Counter(tx.type for tx in transactions if not TransactionType.is_known(tx.type))
        if not unknown:
            return

        policy = self._config.unknown_transaction_types
        if policy == "reject":
            raise SchemaValidationError(
                "Unknown transaction types",
                [f"{tx_type} ({count} transactions)" for tx_type, count in sorted(unknown.items())],
            )
        if policy == "warn":
            for tx_type, count in sorted(unknown.items()):
                self._logger.warning("ingestion.unknown_transaction_type", type=tx_type, count=count)

    def _parse_taxonomy(
        self, raw: RawTaxonomy, resolver: SecurityReferenceResolver
    ) -> Optional[TaxonomyNode]:
        if raw.root is None:
            self._logger.debug("ingestion.taxonomy_without_root", taxonomy=raw.name or raw.id)
            return None

        root = self._parse_classification(raw.root, resolver)
        # The taxonomy (dimension) name labels its root
        return root.model_copy(update={"name": raw.name or root.name})

    def _parse_classification(self, raw: RawClassification, resolver: SecurityReferenceResolver) -> TaxonomyNode:
        node_id = raw.id or str(uuid_lib.uuid4())

        children = [
            self._parse_classification(child, resolver)
            for child in ((raw.children.classification or []) if raw.children else [])
        ]

        raw_assignments = (raw.assignments.assignment or []) if raw.assignments else []
        for position, assignment in enumerate(raw_assignments, start=1):
            vehicle = assignment.investment_vehicle
            if vehicle is None:
                continue
            security_uuid = resolver.resolve(vehicle.reference) if vehicle.reference else vehicle.uuid
            if not security_uuid:
                continue
            children.append(
                TaxonomyNode(
                    id=f"{node_id}/assignment-{position}",
                    name=ASSIGNMENT_NODE_NAME,
                    data=TaxonomyAssignment(
                        security_uuid=security_uuid,
                        weight=int(assignment.weight) if assignment.weight else None,
                    ),
                )
            )

        return TaxonomyNode(id=node_id, name=raw.name or "", color=raw.color, children=tuple(children))

    @staticmethod
    def _build_taxonomy_map(
        taxonomies: list[TaxonomyNode], securities: dict[str, Security]
    ) -> dict[str, tuple[TaxonomyNode, ...]]:
        categories: dict[str, dict[str, TaxonomyNode]] = {}

        def visit(node: TaxonomyNode, parent: TaxonomyNode) -> None:
            if node.data is not None:
                security = securities.get(node.data.security_uuid)
                if security is not None and security.isin:
                    categories.setdefault(security.isin, {}).setdefault(parent.id, parent)
            for child in node.children:
                visit(child, node)

        for root in taxonomies:
            for child in root.children:
                visit(child, root)

        return {isin: tuple(nodes.values()) for isin, nodes in categories.items()}
