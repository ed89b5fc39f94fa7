"""Cache key derivation for (query, category) pairs."""

import hashlib

KEY_LENGTH = 64  # SHA-256 hex digest

# Fixed phrasing per category; county phrasing is filled in per county.
CANONICAL_PHRASES = {
    "federal": "Federal energy rebate programs california, US government energy incentives california",
    "state": "California state energy rebate programs, California state government energy incentives",
    "county": "{county} County energy rebate programs california, {county} County utility incentives california",
}


def normalize(text: str) -> str:
    """Lower-case and drop every whitespace character."""
    return "".join((text or "").lower().split())


def fingerprint(raw_query: str, category: str) -> str:
    """
    Derive the cache key for a query within a category.

    The category is length-prefixed so that characters can never shift across
    the field boundary and produce the same digest for a different pair.

    Args:
        raw_query: Free-text query (already canonicalized if the caller uses
            per-category phrasing)
        category: Category tag (Federal, State, County, ...)

    Returns:
        64-character hex digest
    """
    normalized_category = normalize(category)
    normalized_query = normalize(raw_query)
    key_string = f"{len(normalized_category)}:{normalized_category}:{normalized_query}"
    return hashlib.sha256(key_string.encode("utf-8")).hexdigest()


def extract_county(raw_query: str) -> str:
    """Pull the county name out of queries like 'County:Alameda' or 'Alameda County'."""
    county = (raw_query or "").split(":", 1)[-1].strip()
    if county.lower().endswith(" county"):
        county = county[: -len(" county")].strip()
    return county


def canonical_query(raw_query: str, category: str) -> str:
    """
    Map a caller's query to the canonical phrasing for its category.

    Federal and State collapse to a single phrase, County is phrased around
    the county name, and unknown categories keep the query as given.
    """
    tier = normalize(category)
    if tier == "county":
        return CANONICAL_PHRASES["county"].format(county=extract_county(raw_query))
    if tier in CANONICAL_PHRASES:
        return CANONICAL_PHRASES[tier]
    return raw_query
