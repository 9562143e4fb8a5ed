"""
Security reference resolution.

Documents refer to securities with path-like positional references
(``../../../../securities/security[3]``, 1-based) or, occasionally, with a
direct UUID. The position index is built once from a single pass over the
security list and is read-only afterwards.
"""

import re
from collections.abc import Iterable
from types import MappingProxyType
from typing import Optional

_INDEXED_REFERENCE = re.compile(r"security\[(\d+)\]")
_FIRST_SECURITY_SUFFIX = "/security"


class SecurityReferenceResolver:
    """Resolve security references against an immutable position index."""

    def __init__(self, security_uuids: Iterable[str]):
        uuids = list(security_uuids)
        self._by_position = MappingProxyType({position: uuid for position, uuid in enumerate(uuids, start=1)})
        self._known = frozenset(uuids)

    @property
    def positions(self) -> MappingProxyType:
        """1-based position -> security UUID."""
        return self._by_position

    def resolve(self, reference: Optional[str]) -> Optional[str]:
        """
        Resolve a reference to a security UUID.

        Returns:
            The UUID, or None when the reference cannot be resolved
        """
        if not reference:
            return None

        match = _INDEXED_REFERENCE.search(reference)
        if match:
            return self._by_position.get(int(match.group(1)))

        if reference.endswith(_FIRST_SECURITY_SUFFIX) or reference == "security":
            return self._by_position.get(1)

        if reference in self._known:
            return reference

        return None
