"""
Static configuration for the aggregation engine.

Holds the known statement-table codes and the hand-maintained mapping
between dataset_standard_statements column names and regulatory tag names.
Extra pairs can be merged in from a JSON file at process start; the
aggregation logic only ever talks to a FieldTagMapper.
"""

import json
import logging
import os
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Statement tables
# ---------------------------------------------------------------------------

# Order is preserved for display grouping
STATEMENT_TABLE_IDS = (
    "104000",
    "124000",
    "148600",
    "152200",
    "220000",
    "310000",
    "510000",
    "610000",
)


def statement_table_name(table_id: str) -> str:
    return f"statement_{table_id}"


# Identity / classification columns never treated as standardized values
EXCLUDED_DATASET_COLUMNS = frozenset({
    "id",
    "cik",
    "name",
    "company_name",
    "sic",
    "sic_code",
    "sic_description",
    "fy",
    "fp",
    "form",
    "filed",
})


# ---------------------------------------------------------------------------
# Standardized field <-> tag
# ---------------------------------------------------------------------------

FIELD_TO_TAG: Dict[str, str] = {
    # Income statement
    "revenues": "Revenues",
    "cost_of_revenue": "CostOfRevenue",
    "gross_profit": "GrossProfit",
    "operating_expenses": "OperatingExpenses",
    "operating_incomeLoss_EBITDA": "OperatingIncomeLoss",
    "net_profit": "NetIncomeLoss",

    # Balance sheet
    "assets": "Assets",
    "assets_current": "AssetsCurrent",
    "assets_noncurrent": "AssetsNoncurrent",
    "liabilities": "Liabilities",
    "liabilities_current": "LiabilitiesCurrent",
    "liabilities_noncurrent": "LiabilitiesNoncurrent",
    "stockholders_equity": "StockholdersEquity",
    "cash_cash_equivalents_and_short_term_investments": "CashAndCashEquivalentsAtCarryingValue",
    "property_plant_and_equipment_net": "PropertyPlantAndEquipmentNet",
    "accounts_payable": "AccountsPayableCurrent",
    "inventory": "InventoryNet",

    # Per share
    "earnings_per_share_basic": "EarningsPerShareBasic",
    "earnings_per_share_diluted": "EarningsPerShareDiluted",
    "weighted_average_number_of_shares_outstanding_basic": "WeightedAverageNumberOfSharesOutstandingBasic",

    # Cash flow
    "net_cash_operating_activities": "NetCashProvidedByUsedInOperatingActivities",
    "net_cash_investing_activities": "NetCashProvidedByUsedInInvestingActivities",
    "net_cash_financing_activities": "NetCashProvidedByUsedInFinancingActivities",
}


class FieldTagMapper:
    """Bidirectional lookup between standardized field names and tag names."""

    def __init__(self, field_to_tag: Optional[Dict[str, str]] = None):
        self.field_to_tag = dict(FIELD_TO_TAG if field_to_tag is None else field_to_tag)
        self.tag_to_field = {tag: field for field, tag in self.field_to_tag.items()}

    @classmethod
    def from_json(cls, path: Optional[str]) -> "FieldTagMapper":
        """
        Built-in pairs, extended (or overridden) by a JSON object of
        {"field_name": "TagName"} read from `path`.

        A missing path falls back to the built-in pairs.
        """
        pairs = dict(FIELD_TO_TAG)
        if not path:
            return cls(pairs)
        if not os.path.exists(path):
            logger.warning(f"Field/tag map not found: {path}; using built-in pairs")
            return cls(pairs)

        with open(path, "r") as f:
            extra = json.load(f)
        if not isinstance(extra, dict):
            raise ValueError(f"Field/tag map must be a JSON object: {path}")

        pairs.update({str(k): str(v) for k, v in extra.items()})
        logger.info(f"Loaded {len(extra)} field/tag pairs from {path}")
        return cls(pairs)

    def field_for_tag(self, tag_name: str) -> Optional[str]:
        return self.tag_to_field.get(tag_name)

    def tag_for_field(self, field_name: str) -> Optional[str]:
        return self.field_to_tag.get(field_name)

    def display_tag(self, field_name: str) -> str:
        """Mapped tag name if there is one, else a readable label."""
        return self.tag_for_field(field_name) or prettify_field_name(field_name)

    def __len__(self) -> int:
        return len(self.field_to_tag)


def prettify_field_name(name: Optional[str]) -> str:
    """
    Turn a camelCase or snake_case field name into a readable label.

    >>> prettify_field_name("free_cash_flow")
    'Free cash flow'
    >>> prettify_field_name("netIncome")
    'Net Income'
    """
    if not name:
        return "N/A"
    spaced = re.sub(r"([A-Z])", r" \1", name).replace("_", " ")
    spaced = re.sub(r"\s+", " ", spaced).strip()
    return spaced[:1].upper() + spaced[1:]


DEFAULT_MAPPER = FieldTagMapper()
