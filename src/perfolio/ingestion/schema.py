"""
Raw document schema.

Pydantic models describing the shape of the attributed tree produced by
``perfolio.ingestion.tree``. Validation only checks structure; scaling,
reference resolution and conversion into domain objects happen in the
parser.

Empty elements arrive as empty strings and are normalized to None before
validation, so ``<note></note>`` or ``<transactions/>`` read as "absent".
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _single_to_list(value: Any) -> Any:
    value = _blank_to_none(value)
    if value is None or isinstance(value, list):
        return value
    return [value]


Blank = BeforeValidator(_blank_to_none)
OptStr = Annotated[Optional[str], Blank]


class RawModel(BaseModel):
    """Base for raw schema models: aliases on, unknown elements ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RawReference(RawModel):
    reference: str = Field(alias="@reference")


class RawPrice(RawModel):
    t: str = Field(alias="@t")
    v: str = Field(alias="@v")


class RawPriceList(RawModel):
    price: Annotated[Optional[list[RawPrice]], BeforeValidator(_single_to_list)] = None


class RawSecurity(RawModel):
    uuid: str
    name: str
    currency_code: OptStr = Field(default=None, alias="currencyCode")
    isin: OptStr = None
    ticker_symbol: OptStr = Field(default=None, alias="tickerSymbol")
    prices: Annotated[Optional[RawPriceList], Blank] = None


class RawCrossEntry(RawModel):
    kind: OptStr = Field(default=None, alias="@class")
    portfolio: Annotated[Optional[RawReference], Blank] = None
    reference: OptStr = None
    amount: OptStr = None
    currency_code: OptStr = Field(default=None, alias="currencyCode")


class RawTransaction(RawModel):
    uuid: str
    date: str
    currency_code: OptStr = Field(default=None, alias="currencyCode")
    amount: str
    shares: OptStr = None
    type: str
    note: OptStr = None
    security: Annotated[Optional[RawReference], Blank] = None
    cross_entry: Annotated[Optional[RawCrossEntry], Blank] = Field(default=None, alias="crossEntry")
    updated_at: OptStr = Field(default=None, alias="updatedAt")


class RawAccountTransactions(RawModel):
    items: Annotated[Optional[list[RawTransaction]], BeforeValidator(_single_to_list)] = Field(
        default=None, alias="account-transaction"
    )


class RawPortfolioTransactions(RawModel):
    items: Annotated[Optional[list[RawTransaction]], BeforeValidator(_single_to_list)] = Field(
        default=None, alias="portfolio-transaction"
    )


class RawAccount(RawModel):
    uuid: str
    name: str
    transactions: Annotated[Optional[RawAccountTransactions], Blank] = None


class RawPortfolio(RawModel):
    uuid: str
    name: str
    transactions: Annotated[Optional[RawPortfolioTransactions], Blank] = None


class RawInvestmentVehicle(RawModel):
    reference: OptStr = Field(default=None, alias="@reference")
    uuid: OptStr = Field(default=None, alias="@uuid")
    kind: OptStr = Field(default=None, alias="@class")


class RawAssignment(RawModel):
    investment_vehicle: Annotated[Optional[RawInvestmentVehicle], Blank] = Field(
        default=None, alias="investmentVehicle"
    )
    weight: OptStr = None


class RawAssignmentList(RawModel):
    assignment: Annotated[Optional[list[RawAssignment]], BeforeValidator(_single_to_list)] = None


class RawClassificationList(RawModel):
    classification: Annotated[Optional[list["RawClassification"]], BeforeValidator(_single_to_list)] = None


class RawClassification(RawModel):
    id: OptStr = None
    name: OptStr = None
    color: OptStr = None
    children: Annotated[Optional[RawClassificationList], Blank] = None
    assignments: Annotated[Optional[RawAssignmentList], Blank] = None


class RawTaxonomy(RawModel):
    id: OptStr = None
    name: OptStr = None
    root: Annotated[Optional[RawClassification], Blank] = None


class RawSecurities(RawModel):
    security: Annotated[Optional[list[RawSecurity]], BeforeValidator(_single_to_list)] = None


class RawAccounts(RawModel):
    account: Annotated[Optional[list[RawAccount]], BeforeValidator(_single_to_list)] = None


class RawPortfolios(RawModel):
    portfolio: Annotated[Optional[list[RawPortfolio]], BeforeValidator(_single_to_list)] = None


class RawTaxonomies(RawModel):
    taxonomy: Annotated[Optional[list[RawTaxonomy]], BeforeValidator(_single_to_list)] = None


class RawClient(RawModel):
    base_currency: str = Field(alias="baseCurrency")
    securities: Annotated[Optional[RawSecurities], Blank]
    accounts: Annotated[Optional[RawAccounts], Blank] = None
    portfolios: Annotated[Optional[RawPortfolios], Blank] = None
    taxonomies: Annotated[Optional[RawTaxonomies], Blank] = None


class RawDocument(RawModel):
    client: RawClient


for _model in (RawClassificationList, RawClassification, RawTaxonomy, RawTaxonomies, RawClient, RawDocument):
    _model.model_rebuild()
