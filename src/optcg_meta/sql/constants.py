from __future__ import annotations

import os
import re
from typing import Optional

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _default_schema() -> Optional[str]:
    schema = os.getenv("OPTCG_DB_SCHEMA", "").strip()
    # Empty means the connection's default (public) schema
    if not schema:
        return None
    # Schema is interpolated into raw SQL; reject anything but an identifier
    if not _IDENTIFIER.match(schema):
        return None
    return schema


# Database schema used for the meta tables (None = default schema)
SCHEMA: Optional[str] = _default_schema()


def qualified(table_name: str) -> str:
    """Return ``table_name`` prefixed with the configured schema, if any."""
    return f"{SCHEMA}.{table_name}" if SCHEMA else table_name
