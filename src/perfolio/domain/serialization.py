"""
Plain-data (de)serialization of PortfolioState.

State crossing into the engine worker is reduced to JSON-compatible
structures. Keyed collections become explicit ``[key, value]`` pair lists,
decimals become strings and dates become ISO strings; nothing with live
object identity crosses.
"""

from typing import Any

from perfolio.domain.models import PortfolioState

SerializedPortfolioState = dict[str, Any]


def serialize_state(state: PortfolioState) -> SerializedPortfolioState:
    """
    Serialize a PortfolioState into plain data.

    Args:
        state: Ingested portfolio state

    Returns:
        JSON-compatible dictionary
    """
    return {
        "base_currency": state.base_currency,
        "securities": [[uuid, security.model_dump(mode="json")] for uuid, security in state.securities.items()],
        "transactions": [[uuid, tx.model_dump(mode="json")] for uuid, tx in state.transactions.items()],
        "accounts": [account.model_dump(mode="json") for account in state.accounts],
        "portfolios": [portfolio.model_dump(mode="json") for portfolio in state.portfolios],
        "taxonomies": [node.model_dump(mode="json") for node in state.taxonomies],
        "security_taxonomy_map": [
            [isin, [node.model_dump(mode="json") for node in nodes]]
            for isin, nodes in state.security_taxonomy_map.items()
        ],
    }


def deserialize_state(raw: SerializedPortfolioState) -> PortfolioState:
    """
    Rebuild a PortfolioState from serialize_state output.

    Raises:
        pydantic.ValidationError: If the payload is not a serialized state
    """
    return PortfolioState.model_validate(
        {
            "base_currency": raw["base_currency"],
            "securities": dict(raw.get("securities", [])),
            "transactions": dict(raw.get("transactions", [])),
            "accounts": raw.get("accounts", []),
            "portfolios": raw.get("portfolios", []),
            "taxonomies": raw.get("taxonomies", []),
            "security_taxonomy_map": dict(raw.get("security_taxonomy_map", [])),
        }
    )
