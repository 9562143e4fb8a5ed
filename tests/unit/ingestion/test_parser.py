"""Unit tests for perfolio.ingestion.parser.

Tests cover:
- Golden document ingestion (unscaling, references, mirrored transactions)
- Taxonomy parsing and the ISIN -> category index
- Unknown transaction type policy
- Malformed and structurally invalid documents
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest
from structlog.testing import capture_logs

from perfolio.domain.errors import SchemaValidationError
from perfolio.ingestion import DocumentParser
from perfolio.ingestion.parser import ASSIGNMENT_NODE_NAME
from perfolio.services.valuation.holdings import calculate_holdings
from perfolio.system.config import IngestionConfig

# ============================================================================
# Document builders
# ============================================================================


def _security(uuid: str, prices=(), isin: str = "", currency: str = "EUR") -> str:
    price_xml = "".join(f'<price t="{t}" v="{v}"/>' for t, v in prices)
    return (
        f"<security><uuid>{uuid}</uuid><name>{uuid}</name><currencyCode>{currency}</currencyCode>"
        f"<isin>{isin}</isin><prices>{price_xml}</prices></security>"
    )


def _transaction(
    tag: str,
    uuid: str,
    day: str,
    tx_type: str,
    amount: str,
    reference: Optional[str] = None,
    shares: Optional[str] = None,
) -> str:
    parts = [f"<uuid>{uuid}</uuid>", f"<date>{day}</date>", "<currencyCode>EUR</currencyCode>", f"<amount>{amount}</amount>"]
    if reference is not None:
        parts.append(f'<security reference="{reference}"/>')
    if shares is not None:
        parts.append(f"<shares>{shares}</shares>")
    parts.append(f"<type>{tx_type}</type>")
    return f"<{tag}>{''.join(parts)}</{tag}>"


def _account(uuid: str, *transactions: str) -> str:
    return f"<account><uuid>{uuid}</uuid><name>{uuid}</name><transactions>{''.join(transactions)}</transactions></account>"


def _portfolio(uuid: str, *transactions: str) -> str:
    return (
        f"<portfolio><uuid>{uuid}</uuid><name>{uuid}</name>"
        f"<transactions>{''.join(transactions)}</transactions></portfolio>"
    )


def _document(securities: str = "", accounts: str = "", portfolios: str = "", taxonomies: str = "") -> str:
    return (
        "<client><baseCurrency>EUR</baseCurrency>"
        f"<securities>{securities}</securities>"
        f"<accounts>{accounts}</accounts>"
        f"<portfolios>{portfolios}</portfolios>"
        f"<taxonomies>{taxonomies}</taxonomies>"
        "</client>"
    )


@pytest.fixture
def parser(ingestion_config) -> DocumentParser:
    return DocumentParser(ingestion_config)


# ============================================================================
# Golden document
# ============================================================================


class TestGoldenDocument:
    """Test ingestion of the golden document."""

    def test_entities(self, golden_state):
        assert golden_state.base_currency == "EUR"
        assert list(golden_state.securities) == ["sec-aapl", "sec-msft"]
        assert [account.uuid for account in golden_state.accounts] == ["acc-main"]
        assert [portfolio.uuid for portfolio in golden_state.portfolios] == ["port-main"]

    def test_prices_are_unscaled(self, golden_state):
        prices = golden_state.securities["sec-aapl"].prices

        assert [(p.date, p.value) for p in prices] == [
            (date(2023, 1, 1), Decimal("192.50")),
            (date(2023, 1, 2), Decimal("192.44")),
            (date(2023, 1, 3), Decimal("190.60")),
        ]

    def test_blank_security_fields(self, golden_state):
        security = golden_state.securities["sec-msft"]

        assert security.currency_code == "EUR"
        assert security.ticker_symbol is None
        assert security.prices == ()

    def test_mirrored_transactions_stored_once(self, golden_state):
        # Assert: three distinct transactions although five elements exist
        assert list(golden_state.transactions) == ["tx-deposit", "tx-buy", "tx-sell"]
        assert golden_state.accounts[0].transaction_ids == ("tx-deposit", "tx-buy", "tx-sell")
        assert golden_state.portfolios[0].transaction_ids == ("tx-buy", "tx-sell")

    def test_portfolio_copy_carries_shares(self, golden_state):
        buy = golden_state.transactions["tx-buy"]

        assert buy.amount == Decimal("1925")
        assert buy.shares == Decimal("10")
        assert buy.security_uuid == "sec-aapl"
        assert buy.date == datetime(2023, 1, 1, 10, 30)
        assert buy.note == "Initial position"
        assert buy.cross_entry is not None
        assert buy.cross_entry.kind == "buysell"

    def test_indexed_reference_resolves(self, golden_state):
        assert golden_state.transactions["tx-sell"].security_uuid == "sec-aapl"
        assert golden_state.transactions["tx-sell"].shares == Decimal("5")

    def test_blank_note_is_none(self, golden_state):
        assert golden_state.transactions["tx-deposit"].note is None

    def test_taxonomy_root_takes_taxonomy_name(self, golden_state):
        (taxonomy,) = golden_state.taxonomies

        assert taxonomy.id == "ac-root"
        assert taxonomy.name == "Asset Classes"
        assert [child.name for child in taxonomy.children] == ["Equity", "Cash"]

    def test_assignments_become_leaf_nodes(self, golden_state):
        equity = golden_state.taxonomies[0].children[0]

        assert equity.color == "#1f77b4"
        assert [leaf.id for leaf in equity.children] == ["ac-equity/assignment-1", "ac-equity/assignment-2"]
        assert all(leaf.name == ASSIGNMENT_NODE_NAME for leaf in equity.children)
        assert [(leaf.data.security_uuid, leaf.data.weight) for leaf in equity.children] == [
            ("sec-aapl", 10000),
            ("sec-msft", 5000),
        ]

    def test_taxonomy_map_lists_direct_parents(self, golden_state):
        mapping = golden_state.security_taxonomy_map

        assert [node.id for node in mapping["US0378331005"]] == ["ac-equity"]
        assert [node.id for node in mapping["US5949181045"]] == ["ac-equity", "ac-cash-eur"]


# ============================================================================
# Structure variants
# ============================================================================


class TestDocumentVariants:
    """Test less common but valid document shapes."""

    def test_empty_containers(self, parser):
        state = parser.parse(_document())

        assert state.securities == {}
        assert state.transactions == {}
        assert state.accounts == ()
        assert state.taxonomies == ()

    def test_unsorted_and_duplicate_prices(self, parser):
        # Arrange: out of order, 2023-01-02 listed twice
        text = _document(
            securities=_security(
                "s1",
                prices=[("2023-01-03", "300000000"), ("2023-01-02", "100000000"), ("2023-01-02", "200000000")],
            )
        )

        # Act
        state = parser.parse(text)

        # Assert: ascending, last duplicate wins
        assert [(p.date, p.value) for p in state.securities["s1"].prices] == [
            (date(2023, 1, 2), Decimal("2")),
            (date(2023, 1, 3), Decimal("3")),
        ]

    def test_unresolvable_reference_is_tolerated(self, parser):
        text = _document(
            securities=_security("s1"),
            portfolios=_portfolio(
                "p1",
                _transaction("portfolio-transaction", "t1", "2023-01-01", "BUY", "100", "../securities/security[7]", "100000000"),
            ),
        )

        state = parser.parse(text)

        assert state.transactions["t1"].security_uuid is None
        assert state.transactions["t1"].shares == Decimal("1")

    def test_direct_uuid_reference(self, parser):
        text = _document(
            securities=_security("s1") + _security("s2"),
            portfolios=_portfolio(
                "p1", _transaction("portfolio-transaction", "t1", "2023-01-01", "BUY", "100", "s2", "100000000")
            ),
        )

        assert parser.parse(text).transactions["t1"].security_uuid == "s2"

    def test_duplicate_id_within_container_listed_once(self, parser):
        deposit = _transaction("account-transaction", "t1", "2023-01-01", "DEPOSIT", "100")
        state = parser.parse(_document(accounts=_account("a1", deposit, deposit)))

        assert state.accounts[0].transaction_ids == ("t1",)
        assert len(state.transactions) == 1

    def test_date_without_time(self, parser):
        text = _document(accounts=_account("a1", _transaction("account-transaction", "t1", "2023-05-17", "DEPOSIT", "1")))

        assert parser.parse(text).transactions["t1"].date == datetime(2023, 5, 17)

    def test_mixed_offset_and_naive_timestamps(self, parser):
        # Arrange: one stamp with a UTC offset, one without
        text = _document(
            securities=_security("s1"),
            portfolios=_portfolio(
                "p1",
                _transaction("portfolio-transaction", "t1", "2023-01-02T10:00+02:00", "BUY", "100", "s1", "100000000"),
                _transaction("portfolio-transaction", "t2", "2023-01-01T09:00", "BUY", "100", "s1", "100000000"),
            ),
        )

        # Act
        state = parser.parse(text)

        # Assert: wall-clock time kept, offset dropped, ordering works
        assert state.transactions["t1"].date == datetime(2023, 1, 2, 10, 0)
        assert state.transactions["t1"].date.tzinfo is None
        assert calculate_holdings(state.all_transactions(), date(2023, 1, 2)) == {"s1": Decimal("2")}

    def test_default_currency_applies_to_security_without_currency(self):
        parser = DocumentParser(IngestionConfig(default_currency="USD"))

        state = parser.parse(_document(securities=_security("s1", currency="")))

        assert state.securities["s1"].currency_code == "USD"

    def test_taxonomy_without_root_is_skipped(self, parser):
        state = parser.parse(_document(taxonomies="<taxonomy><id>t1</id><name>Empty</name></taxonomy>"))
        assert state.taxonomies == ()

    def test_classification_without_id_gets_one(self, parser):
        taxonomy = (
            "<taxonomy><id>t1</id><name>Regions</name><root><name>Root</name>"
            "<children><classification><name>Europe</name></classification></children></root></taxonomy>"
        )

        (root,) = parser.parse(_document(taxonomies=taxonomy)).taxonomies

        assert root.id
        assert root.children[0].id
        assert root.children[0].id != root.id

    def test_assignment_without_vehicle_is_skipped(self, parser):
        taxonomy = (
            "<taxonomy><id>t1</id><name>Regions</name><root><id>r</id><name>Root</name>"
            "<assignments><assignment><weight>100</weight></assignment></assignments></root></taxonomy>"
        )

        (root,) = parser.parse(_document(taxonomies=taxonomy)).taxonomies

        assert root.children == ()


# ============================================================================
# Unknown transaction types
# ============================================================================


class TestUnknownTransactionTypes:
    """Test the unknown transaction type policy."""

    @pytest.fixture
    def document(self) -> str:
        return _document(
            accounts=_account(
                "a1",
                _transaction("account-transaction", "t1", "2023-01-01", "DEPOSIT", "100"),
                _transaction("account-transaction", "t2", "2023-01-02", "TRANSFER_IN", "100"),
                _transaction("account-transaction", "t3", "2023-01-03", "TRANSFER_IN", "50"),
            )
        )

    def test_warn_keeps_and_logs_once_per_type(self, document):
        parser = DocumentParser(IngestionConfig(unknown_transaction_types="warn"))

        with capture_logs() as logs:
            state = parser.parse(document)

        assert state.transactions["t2"].type == "TRANSFER_IN"
        warnings = [entry for entry in logs if entry["event"] == "ingestion.unknown_transaction_type"]
        assert len(warnings) == 1
        assert warnings[0]["type"] == "TRANSFER_IN"
        assert warnings[0]["count"] == 2

    def test_ignore_keeps_silently(self, document):
        parser = DocumentParser(IngestionConfig(unknown_transaction_types="ignore"))

        with capture_logs() as logs:
            state = parser.parse(document)

        assert len(state.transactions) == 3
        assert not [entry for entry in logs if entry["event"] == "ingestion.unknown_transaction_type"]

    def test_reject_fails_the_load(self, document):
        parser = DocumentParser(IngestionConfig(unknown_transaction_types="reject"))

        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(document)

        assert exc_info.value.issues == ["TRANSFER_IN (2 transactions)"]


# ============================================================================
# Invalid documents
# ============================================================================


class TestInvalidDocuments:
    """Test rejection of malformed or structurally invalid documents."""

    def test_malformed_text(self, parser):
        with pytest.raises(SchemaValidationError, match="Malformed document"):
            parser.parse("<client><baseCurrency>EUR</client>")

    def test_missing_securities(self, parser):
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse("<client><baseCurrency>EUR</baseCurrency></client>")

        assert any(issue.startswith("client.securities") for issue in exc_info.value.issues)

    def test_missing_transaction_field(self, parser):
        broken = "<account-transaction><uuid>t1</uuid><date>2023-01-01</date><type>DEPOSIT</type></account-transaction>"

        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(_document(accounts=_account("a1", broken)))

        assert any("amount" in issue for issue in exc_info.value.issues)

    def test_all_mapping_issues_reported_together(self, parser):
        # Arrange: bad date and bad amount in two different transactions
        text = _document(
            accounts=_account(
                "a1",
                _transaction("account-transaction", "t1", "yesterday", "DEPOSIT", "100"),
                _transaction("account-transaction", "t2", "2023-01-01", "DEPOSIT", "lots"),
            )
        )

        # Act
        with pytest.raises(SchemaValidationError) as exc_info:
            parser.parse(text)

        # Assert
        issues = exc_info.value.issues
        assert len(issues) == 2
        assert issues[0].startswith("transaction t1: invalid date")
        assert issues[1].startswith("transaction t2:")

    def test_failure_is_logged(self, parser):
        with capture_logs() as logs:
            with pytest.raises(SchemaValidationError):
                parser.parse("")

        assert [entry["event"] for entry in logs] == ["ingestion.parse_failed"]
