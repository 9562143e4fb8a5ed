"""
Generic attributed tree built from raw document text.

Each element becomes either a string (leaf without attributes) or a dict:

- attributes are stored under ``"@<name>"`` keys
- child elements are stored under their tag; repeated tags become lists
- text of an element that also has attributes or children goes under ``"#text"``

Some tags are always lists even when they occur once, so downstream
validation never has to guess between a single object and a sequence.
"""

from typing import Any
from xml.etree import ElementTree

from perfolio.domain.errors import SchemaValidationError

ATTRIBUTE_PREFIX = "@"
TEXT_KEY = "#text"

ALWAYS_LIST_TAGS = frozenset(
    {
        "price",
        "account-transaction",
        "portfolio-transaction",
        "accountTransaction",
        "portfolioTransaction",
        "taxonomy",
        "classification",
        "assignment",
    }
)


# Definitions inside their collection element, references everywhere else
COLLECTION_TAGS = {"security": "securities", "account": "accounts", "portfolio": "portfolios"}


def _is_list_tag(tag: str, parent_tag: str) -> bool:
    if tag in ALWAYS_LIST_TAGS:
        return True
    return COLLECTION_TAGS.get(tag) == parent_tag


def element_to_tree(element: ElementTree.Element) -> Any:
    """Convert an element (recursively) into the attributed tree form."""
    children = list(element)
    text = (element.text or "").strip()

    if not element.attrib and not children:
        return text

    node: dict[str, Any] = {f"{ATTRIBUTE_PREFIX}{name}": value for name, value in element.attrib.items()}

    for child in children:
        value = element_to_tree(child)
        if _is_list_tag(child.tag, element.tag):
            node.setdefault(child.tag, []).append(value)
        elif child.tag in node:
            existing = node[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[child.tag] = [existing, value]
        else:
            node[child.tag] = value

    if text:
        node[TEXT_KEY] = text

    return node


def parse_tree(text: str) -> dict[str, Any]:
    """
    Parse document text into ``{root_tag: tree}``.

    Raises:
        SchemaValidationError: If the text is not well-formed
    """
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as exc:
        raise SchemaValidationError("Malformed document", [str(exc)]) from exc

    return {root.tag: element_to_tree(root)}
