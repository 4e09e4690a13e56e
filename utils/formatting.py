"""
Presentation helpers for filing values.

Missing values are ordinary data here: every helper renders None as
"N/A" instead of raising.
"""

from typing import Mapping, Optional

NOT_AVAILABLE = "N/A"

# (threshold, suffix), largest first
_SCALES = [
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
]

# Keyword rules, checked in order; first hit wins
_CATEGORY_RULES = [
    ("Income Statement", ("revenue", "income", "earnings", "profit")),
    ("Balance Sheet", ("asset", "liabilit", "equity", "stockholders")),
    ("Cash Flow", ("cash", "flow", "operating", "investing", "financing")),
    ("Share Information", ("share", "stock", "outstanding", "eps")),
]

CATEGORY_ORDER = [name for name, _ in _CATEGORY_RULES] + ["Other"]


def format_number(value) -> str:
    """
    Compact display of a filing value.

    >>> format_number(1500000)
    '1.50M'
    >>> format_number(None)
    'N/A'
    """
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)

    for threshold, suffix in _SCALES:
        if abs(value) >= threshold:
            return f"{value / threshold:.2f}{suffix}"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_statement_values(values: Optional[Mapping[str, Optional[float]]]) -> str:
    """One "table: value" line per non-null statement value."""
    if not values:
        return NOT_AVAILABLE
    lines = [
        f"{table_id}: {format_number(value)}"
        for table_id, value in values.items()
        if value is not None
    ]
    return "\n".join(lines) or NOT_AVAILABLE


def format_cik(cik) -> str:
    if cik is None or cik == "":
        return NOT_AVAILABLE
    return str(cik).zfill(10)


def categorize_tag(tag_name: Optional[str]) -> str:
    """Statement category for a tag, by keyword."""
    if not tag_name:
        return "Other"
    tag = tag_name.lower()
    for category, keywords in _CATEGORY_RULES:
        if any(k in tag for k in keywords):
            return category
    return "Other"
