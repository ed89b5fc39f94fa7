"""Search queries per rebate category."""

from typing import List, Optional

CATEGORIES = ("Federal", "State", "County")


def normalize_category(category: str) -> str:
    """Return the canonical spelling of a category, e.g. 'county' -> 'County'."""
    for known in CATEGORIES:
        if (category or "").strip().lower() == known.lower():
            return known
    raise ValueError(f"Invalid category: {category}. Expected one of {', '.join(CATEGORIES)}.")


def get_search_queries(category: str, county: Optional[str] = None) -> List[str]:
    """
    Build the web search queries for a category.

    Raises:
        ValueError: For unknown categories, or County without a county name
    """
    category = normalize_category(category)

    if category == "Federal":
        return [
            "federal energy rebate programs california",
            "US government energy incentives california",
        ]
    if category == "State":
        return [
            "California state energy rebate programs",
            "California energy incentives",
        ]

    if not county or not county.strip():
        raise ValueError("County is required for County searches")
    county = county.strip()
    return [
        f"{county} County local energy rebate programs",
        f"{county} County energy efficiency incentives",
    ]


def cache_query(category: str, county: Optional[str] = None) -> str:
    """Query text the cache is keyed on: 'County:Alameda', or the bare category."""
    return f"{category}:{county.strip()}" if county and county.strip() else category
