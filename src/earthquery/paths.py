"""
Query file location resolution.

Two deployment variants exist: the query-file interface and the older
query.txt interface.  They share the same grammar and write protocol and only
differ in the configuration key naming where Earth expects the file.
"""

from pathlib import Path
from typing import Any, Optional

QUERY_VARIANT_QUERY = "query"
QUERY_VARIANT_QUERYTXT = "querytxt"

# Configuration key holding the query file location, per variant.
QUERY_LOCATION_KEYS = {
    QUERY_VARIANT_QUERY: "lg.earth.query.location",
    QUERY_VARIANT_QUERYTXT: "lg.earth.querytxt.location",
}


def location_key(variant: str) -> str:
    """Return the config key naming the query file for *variant*.

    Raises:
        ValueError: If the variant is unknown.
    """
    try:
        return QUERY_LOCATION_KEYS[variant]
    except KeyError:
        raise ValueError(
            f"Unknown query variant '{variant}'. "
            f"Expected one of: {', '.join(sorted(QUERY_LOCATION_KEYS))}"
        ) from None


def resolve_query_path(config: Any) -> Optional[Path]:
    """Return the configured query file path, or None when it is not set."""
    variant = config.get("query_variant", QUERY_VARIANT_QUERY) or QUERY_VARIANT_QUERY
    raw = config.get(location_key(variant), "") or ""
    raw = str(raw).strip()
    if not raw:
        return None
    return Path(raw).expanduser()
