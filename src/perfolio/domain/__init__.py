"""Domain model, fixed-point scaling, error taxonomy and serialization."""

from perfolio.domain.errors import (
    EngineError,
    EngineErrorCode,
    EngineException,
    SchemaValidationError,
    parse_engine_error,
)
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
from perfolio.domain.serialization import deserialize_state, serialize_state

__all__ = [
    "Account",
    "CrossEntry",
    "EngineError",
    "EngineErrorCode",
    "EngineException",
    "Portfolio",
    "PortfolioState",
    "Price",
    "SchemaValidationError",
    "Security",
    "TaxonomyAssignment",
    "TaxonomyNode",
    "Transaction",
    "TransactionType",
    "deserialize_state",
    "parse_engine_error",
    "serialize_state",
]
