"""
Seasonal and year-over-year demand trends.

Computes, per product-year and per category-year:
- the share of the year's units bought in each calendar month
- total units for the year
- (categories only) growth versus the category's previous reported year
"""

import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog, IssueKind
from .index import OrderFactIndex
from .logging_config import get_logger
from .numeric import round_half_up, safe_divide

log = get_logger("trends")

MONTH_COLUMNS = [
    "jan_pct",
    "feb_pct",
    "mar_pct",
    "apr_pct",
    "may_pct",
    "jun_pct",
    "jul_pct",
    "aug_pct",
    "sep_pct",
    "oct_pct",
    "nov_pct",
    "dec_pct",
]

PRODUCT_OUTPUT_COLUMNS = ["product_id", "year", *MONTH_COLUMNS, "total_yearly_units"]
CATEGORY_OUTPUT_COLUMNS = [
    "product_category_name",
    "year",
    *MONTH_COLUMNS,
    "total_yearly_units",
    "yoy_growth_pct",
]


def monthly_distribution(items: pd.DataFrame, key: str) -> pd.DataFrame:
    """
    Month-by-month share of units for each (key, year).

    One grouping pass yields all twelve month counters; months without
    sales are filled with 0.
    """
    purchased = items["order_purchase_timestamp"]
    counts = (
        items.assign(year=purchased.dt.year, month=purchased.dt.month)
        .groupby([key, "year", "month"])
        .size()
        .unstack("month", fill_value=0)
        .reindex(columns=range(1, 13), fill_value=0)
    )
    totals = counts.sum(axis=1)

    shares = counts.apply(lambda col: round_half_up(safe_divide(col * 100, totals), 2))
    shares.columns = MONTH_COLUMNS
    shares["total_yearly_units"] = totals.astype("int64")

    result = shares.reset_index()
    result["year"] = result["year"].astype("int64")
    return result


def compute_product_trends(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
) -> pd.DataFrame:
    """
    Monthly unit split per product and year.

    Returns DataFrame sorted by year descending, then total units descending.
    """
    items = index.items
    if len(items) == 0:
        return pd.DataFrame(columns=PRODUCT_OUTPUT_COLUMNS)

    result = monthly_distribution(items, "product_id")
    result = result.sort_values(
        ["year", "total_yearly_units", "product_id"],
        ascending=[False, False, True],
        kind="stable",
    )
    log.info(f"Computed {len(result):,} product-year trend rows")
    return result[PRODUCT_OUTPUT_COLUMNS].reset_index(drop=True)


def add_yoy_growth(yearly: pd.DataFrame, key: str) -> pd.DataFrame:
    """
    Growth of total_yearly_units against the previous row of the same key.

    "Previous" is the immediately preceding year present for that key after
    sorting years ascending, not necessarily year - 1. Null when there is no
    previous row or its total is 0.
    """
    ordered = yearly.sort_values([key, "year"], kind="stable")
    previous = ordered.groupby(key, sort=False)["total_yearly_units"].shift(1)
    growth = safe_divide((ordered["total_yearly_units"] - previous) * 100, previous)
    return ordered.assign(yoy_growth_pct=round_half_up(growth, 2))


def compute_category_trends(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
) -> pd.DataFrame:
    """
    Monthly unit split and year-over-year growth per category.

    Items whose product has no category are left out.

    Returns DataFrame sorted by category, then year descending.
    """
    discards = discards if discards is not None else DiscardLog(stage="trends")
    items = index.items

    uncategorised = items["product_category_name"].isna()
    discards.record(
        "order_items",
        "missing_product_category",
        IssueKind.INVALID_INPUT,
        int(uncategorised.sum()),
        items.loc[uncategorised, "product_id"].drop_duplicates().head(5).tolist(),
    )
    items = items[~uncategorised]
    if len(items) == 0:
        return pd.DataFrame(columns=CATEGORY_OUTPUT_COLUMNS)

    yearly = monthly_distribution(items, "product_category_name")
    result = add_yoy_growth(yearly, "product_category_name")

    no_baseline = result["yoy_growth_pct"].isna()
    log.debug(f"{int(no_baseline.sum()):,} category-years have no growth baseline")

    result = result.sort_values(
        ["product_category_name", "year"], ascending=[True, False], kind="stable"
    )
    log.info(f"Computed {len(result):,} category-year trend rows")
    return result[CATEGORY_OUTPUT_COLUMNS].reset_index(drop=True)
