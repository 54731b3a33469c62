"""
Category Router
===============

Resolves the destination webhook for an entry from its feed category using
a ``category=webhookURL`` table, falling back to the default endpoint.
"""

from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..utils.logging import get_logger_for_component


def parse_category_map(table: Optional[str]) -> Mapping[str, str]:
    """Parse a multi-line ``key=value`` table into a read-only ordered mapping.

    Blank lines, lines without ``=`` and lines whose key or value is empty
    after trimming are discarded. Only the first ``=`` separates key from
    value, so endpoint URLs may carry ``=`` in their query string. A repeated
    category keeps its last value.
    """
    mapping: Dict[str, str] = {}
    if not table:
        return MappingProxyType(mapping)

    for line in table.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key and value:
            mapping[key] = value

    return MappingProxyType(mapping)


def serialize_category_map(mapping: Mapping[str, str]) -> str:
    """Render a mapping back into the ``key=value`` table format."""
    return "\n".join(f"{key}={value}" for key, value in mapping.items())


class CategoryRouter:
    """Chooses a webhook endpoint per feed category."""

    def __init__(self):
        self.logger = get_logger_for_component("category_router")

    def resolve_endpoint(
        self, category_name: Optional[str], mapping_table: str, default_endpoint: str
    ) -> str:
        """Return the endpoint mapped to ``category_name`` or ``default_endpoint``."""
        return self.resolve_from_map(
            category_name, parse_category_map(mapping_table), default_endpoint
        )

    def resolve_from_map(
        self,
        category_name: Optional[str],
        category_map: Mapping[str, str],
        default_endpoint: str,
    ) -> str:
        """Same as :meth:`resolve_endpoint` for an already parsed table."""
        if category_name is not None and category_name in category_map:
            self.logger.info(
                f"Routing entry from category '{category_name}' to its dedicated webhook",
                extra={"category": category_name},
            )
            return category_map[category_name]

        return default_endpoint
