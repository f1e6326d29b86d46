"""
Seller delivery-risk scoring.

Flags sellers whose late carrier handoffs go together with first-time
buyers leaving bad reviews (and, by assumption, not coming back).
"""

import numpy as np
import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog, IssueKind
from .index import OrderFactIndex
from .logging_config import get_logger
from .numeric import calendar_days, round_half_up, safe_divide

log = get_logger("seller_risk")

HIGH_RISK = "HIGH RISK"
LOW_RISK = "LOW RISK"
CHURN_MAX_SCORE = 2

OUTPUT_COLUMNS = [
    "seller_id",
    "delayed_orders",
    "churned_orders",
    "churn_probability",
    "risk_flag",
]


def latest_review_per_order(reviews: pd.DataFrame) -> pd.DataFrame:
    """Keep the most recently created review of each order."""
    return (
        reviews.sort_values(["order_id", "review_creation_date", "review_id"], kind="stable")
        .drop_duplicates("order_id", keep="last")
        .reset_index(drop=True)
    )


def build_shipping_data(
    index: OrderFactIndex, settings: AnalyticsSettings, discards: DiscardLog
) -> pd.DataFrame:
    """
    One row per (handed-off item, review of its order).

    delay_days = carrier handoff date - shipping limit date (negative when
    handed off early). An order with several reviews yields several rows
    unless dedupe_reviews is set.
    """
    items = index.items
    handed_off = items[items["order_delivered_carrier_date"].notna()]

    no_limit = handed_off["shipping_limit_date"].isna()
    discards.record(
        "order_items",
        "missing_shipping_limit_date",
        IssueKind.INVALID_INPUT,
        int(no_limit.sum()),
        handed_off.loc[no_limit, "order_id"].head(5).tolist(),
    )
    handed_off = handed_off[~no_limit]

    shipping = handed_off[
        ["order_id", "seller_id", "customer_id", "customer_unique_id"]
    ].assign(
        delay_days=calendar_days(
            handed_off["order_delivered_carrier_date"], handed_off["shipping_limit_date"]
        )
    )

    reviews = index.reviews
    if settings.dedupe_reviews:
        reviews = latest_review_per_order(reviews)

    unreviewed = ~shipping["order_id"].isin(reviews["order_id"])
    discards.record(
        "order_items",
        "order_without_review",
        IssueKind.UNRESOLVED_REFERENCE,
        int(unreviewed.sum()),
        shipping.loc[unreviewed, "order_id"].head(5).tolist(),
    )

    return shipping.merge(
        reviews[["order_id", "review_id", "review_score"]], on="order_id", how="inner"
    )


def compute_seller_risk(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
) -> pd.DataFrame:
    """
    Churn probability among each seller's delayed shipments.

    A delayed row is churned when its buyer placed exactly one order in
    total and scored the order 2 or lower.

    Returns DataFrame sorted by churn_probability descending.
    """
    settings = settings or get_settings()
    discards = discards if discards is not None else DiscardLog(stage="seller_risk")

    shipping = build_shipping_data(index, settings, discards)
    delayed = shipping[shipping["delay_days"] >= settings.min_delay_days]
    if len(delayed) == 0:
        log.info("No delayed shipments found")
        return pd.DataFrame(columns=OUTPUT_COLUMNS)

    key = settings.churn_customer_key
    order_counts = index.order_counts_for(key)
    buyer_orders = delayed[key].map(order_counts).fillna(0)
    churned = (buyer_orders == 1) & (delayed["review_score"] <= CHURN_MAX_SCORE)

    scores = (
        delayed.assign(churned=churned.astype("int64"))
        .groupby("seller_id", sort=True)
        .agg(delayed_orders=("order_id", "size"), churned_orders=("churned", "sum"))
        .reset_index()
    )
    scores["delayed_orders"] = scores["delayed_orders"].astype("int64")
    scores["churned_orders"] = scores["churned_orders"].astype("int64")
    scores["churn_probability"] = round_half_up(
        safe_divide(scores["churned_orders"], scores["delayed_orders"]), 2
    )
    # Flag from the emitted (rounded) value so the two never disagree
    scores["risk_flag"] = np.where(
        scores["churn_probability"] > settings.churn_risk_cutoff, HIGH_RISK, LOW_RISK
    )

    scores = scores.sort_values(
        ["churn_probability", "seller_id"], ascending=[False, True], kind="stable"
    )
    high = int((scores["risk_flag"] == HIGH_RISK).sum())
    log.info(f"Scored {len(scores):,} sellers with delays, {high:,} flagged high risk")
    return scores[OUTPUT_COLUMNS].reset_index(drop=True)
