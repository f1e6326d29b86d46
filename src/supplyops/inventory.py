"""
Inventory reorder parameters per product.

For every product with enough delivered history:

    annual_demand  = item_count / (span_days / 365)
    EOQ            = sqrt(2 * annual_demand * avg_freight / (avg_price * holding_cost))
    safety_stock   = z * lead_time_sigma * (annual_demand / 365)
    reorder_point  = avg_lead_time_days * (annual_demand / 365) + safety_stock

Freight stands in for the per-order cost and price for the unit cost.
Lead time is purchase -> delivery to customer.
"""

import numpy as np
import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog, IssueKind
from .index import OrderFactIndex
from .logging_config import get_logger
from .numeric import DAYS_PER_YEAR, calendar_days, elapsed_days, round_half_up, safe_divide

log = get_logger("inventory")

OUTPUT_COLUMNS = [
    "product_id",
    "product_category_name",
    "item_count",
    "annual_demand",
    "avg_lead_time_days",
    "lead_time_sigma",
    "eoq",
    "safety_stock",
    "reorder_point",
]


def delivered_item_stats(
    index: OrderFactIndex, settings: AnalyticsSettings
) -> pd.DataFrame:
    """
    Per-product demand and lead-time statistics over delivered items.

    Returns one row per product with item_count, avg_price, avg_freight,
    span_days, avg_lead_time_days and lead_time_sigma (sample std, n-1).
    """
    items = index.items
    delivered = items[
        (items["order_status"] == settings.delivered_status)
        & items["order_delivered_customer_date"].notna()
    ]
    if len(delivered) == 0:
        return pd.DataFrame(
            columns=[
                "product_id",
                "product_category_name",
                "item_count",
                "avg_price",
                "avg_freight",
                "span_days",
                "avg_lead_time_days",
                "lead_time_sigma",
            ]
        )

    delivered = delivered.assign(
        lead_time_days=elapsed_days(
            delivered["order_delivered_customer_date"],
            delivered["order_purchase_timestamp"],
        ),
        # Invalid amounts still count as demand but stay out of the cost means
        valid_price=delivered["price"].where(delivered["has_valid_amounts"]),
        valid_freight=delivered["freight_value"].where(delivered["has_valid_amounts"]),
    )

    stats = (
        delivered.groupby("product_id", sort=True)
        .agg(
            product_category_name=("product_category_name", "first"),
            item_count=("order_id", "size"),
            avg_price=("valid_price", "mean"),
            avg_freight=("valid_freight", "mean"),
            first_purchase=("order_purchase_timestamp", "min"),
            last_purchase=("order_purchase_timestamp", "max"),
            avg_lead_time_days=("lead_time_days", "mean"),
            lead_time_sigma=("lead_time_days", "std"),
        )
        .reset_index()
    )
    stats["span_days"] = calendar_days(stats["last_purchase"], stats["first_purchase"])
    return stats.drop(columns=["first_purchase", "last_purchase"])


def compute_inventory_policy(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
) -> pd.DataFrame:
    """
    Compute EOQ, safety stock and reorder point per product.

    Products with item_count <= min_order_count_for_eoq or a non-positive
    average price are skipped. Products whose purchases all fall on one day
    (zero span) have no defined annual demand and are skipped as well.

    Returns DataFrame sorted by reorder_point descending.
    """
    settings = settings or get_settings()
    discards = discards if discards is not None else DiscardLog(stage="inventory")

    stats = delivered_item_stats(index, settings)
    eligible = stats[
        (stats["item_count"] > settings.min_order_count_for_eoq) & (stats["avg_price"] > 0)
    ].copy()
    log.debug(
        f"{len(eligible):,} of {len(stats):,} products pass the volume/price filter"
    )

    eligible["annual_demand"] = safe_divide(
        eligible["item_count"], eligible["span_days"] / DAYS_PER_YEAR
    )
    zero_span = eligible["annual_demand"].isna()
    discards.record(
        "products",
        "zero_demand_span",
        IssueKind.UNDEFINED_RATIO,
        int(zero_span.sum()),
        eligible.loc[zero_span, "product_id"].head(5).tolist(),
    )

    # Sample std needs two observations
    no_sigma = ~zero_span & eligible["lead_time_sigma"].isna()
    discards.record(
        "products",
        "single_lead_time_observation",
        IssueKind.UNDEFINED_RATIO,
        int(no_sigma.sum()),
        eligible.loc[no_sigma, "product_id"].head(5).tolist(),
    )
    result = eligible[~zero_span & ~no_sigma].copy()
    if len(result) == 0:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)

    daily_demand = result["annual_demand"] / DAYS_PER_YEAR
    holding_cost = result["avg_price"] * settings.holding_cost_fraction
    eoq = np.sqrt(
        safe_divide(2 * result["annual_demand"] * result["avg_freight"], holding_cost)
    )
    safety_stock = settings.service_level_z * result["lead_time_sigma"] * daily_demand
    reorder_point = result["avg_lead_time_days"] * daily_demand + safety_stock

    result["eoq"] = round_half_up(eoq, 0).astype("int64")
    result["safety_stock"] = round_half_up(safety_stock, 0).astype("int64")
    result["reorder_point"] = round_half_up(reorder_point, 0).astype("int64")
    result["annual_demand"] = round_half_up(result["annual_demand"], 2)
    result["avg_lead_time_days"] = round_half_up(result["avg_lead_time_days"], 2)
    result["lead_time_sigma"] = round_half_up(result["lead_time_sigma"], 2)
    result["item_count"] = result["item_count"].astype("int64")

    result = result.sort_values(
        ["reorder_point", "product_id"], ascending=[False, True], kind="stable"
    )
    log.info(f"Computed reorder parameters for {len(result):,} products")
    return result[OUTPUT_COLUMNS].reset_index(drop=True)
