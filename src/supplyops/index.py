"""
Join/index builder.

Turns the raw snapshot into the joined, validated frames every analyzer
reads, so no analyzer has to rescan or re-join the raw collections:

- items: one row per resolvable order item, carrying its order, product
  category and customer columns
- reviews: reviews of resolvable orders with a valid 1-5 score
- customer order counts (by customer id and by unique person id)
- resolved coordinates per zip prefix

Rows that cannot be resolved are dropped and tallied in the DiscardLog.
"""

from dataclasses import dataclass
import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog, IssueKind
from .logging_config import get_logger, log_duration
from .schema import Snapshot

log = get_logger("index")

ORDER_FACT_COLUMNS = [
    "order_id",
    "customer_id",
    "order_status",
    "order_purchase_timestamp",
    "order_delivered_carrier_date",
    "order_delivered_customer_date",
    "customer_unique_id",
    "customer_zip_code_prefix",
]


@dataclass(frozen=True)
class OrderFactIndex:
    """Read-only joined view of a snapshot, shared by all analyzers."""

    items: pd.DataFrame
    orders: pd.DataFrame
    reviews: pd.DataFrame
    customer_order_counts: pd.Series
    unique_customer_order_counts: pd.Series
    geo_by_prefix: pd.DataFrame
    discards: DiscardLog

    def order_counts_for(self, key: str) -> pd.Series:
        """Order count per buyer, keyed by customer_id or customer_unique_id."""
        if key == "customer_unique_id":
            return self.unique_customer_order_counts
        return self.customer_order_counts


def _drop_duplicate_keys(
    df: pd.DataFrame, keys: list[str], entity: str, discards: DiscardLog
) -> pd.DataFrame:
    dupes = df.duplicated(subset=keys, keep="first")
    discards.record(
        entity,
        "duplicate_key",
        IssueKind.INVALID_INPUT,
        int(dupes.sum()),
        df.loc[dupes, keys[0]].head(5).tolist(),
    )
    return df[~dupes]


def _drop_unresolved(
    df: pd.DataFrame,
    column: str,
    valid_keys: pd.Series,
    entity: str,
    discards: DiscardLog,
) -> pd.DataFrame:
    resolved = df[column].isin(valid_keys)
    discards.record(
        entity,
        f"unresolved_{column}",
        IssueKind.UNRESOLVED_REFERENCE,
        int((~resolved).sum()),
        df.loc[~resolved, column].head(5).tolist(),
    )
    return df[resolved]


def _drop_children_of_discarded_orders(
    df: pd.DataFrame,
    raw_orders: pd.DataFrame,
    orders: pd.DataFrame,
    entity: str,
    discards: DiscardLog,
) -> pd.DataFrame:
    """Rows whose order exists but was itself discarded; tallied apart from unresolved ids."""
    orphaned = df["order_id"].isin(raw_orders["order_id"]) & ~df["order_id"].isin(
        orders["order_id"]
    )
    discards.record(
        entity,
        "parent_order_discarded",
        IssueKind.INVALID_INPUT,
        int(orphaned.sum()),
        df.loc[orphaned, "order_id"].head(5).tolist(),
    )
    return df[~orphaned]


def _build_orders(snapshot: Snapshot, discards: DiscardLog) -> pd.DataFrame:
    """Orders with a purchase timestamp and a resolvable customer."""
    orders = _drop_duplicate_keys(snapshot.orders, ["order_id"], "orders", discards)

    no_purchase = orders["order_purchase_timestamp"].isna()
    discards.record(
        "orders",
        "missing_purchase_timestamp",
        IssueKind.INVALID_INPUT,
        int(no_purchase.sum()),
        orders.loc[no_purchase, "order_id"].head(5).tolist(),
    )
    orders = orders[~no_purchase]

    customers = _drop_duplicate_keys(
        snapshot.customers, ["customer_id"], "customers", discards
    )
    orders = _drop_unresolved(orders, "customer_id", customers["customer_id"], "orders", discards)

    orders = orders.merge(
        customers[["customer_id", "customer_unique_id", "customer_zip_code_prefix"]],
        on="customer_id",
        how="left",
        validate="many_to_one",
    )

    # Deliveries recorded before the purchase are treated as unknown
    bad_delivery = (
        orders["order_delivered_customer_date"] < orders["order_purchase_timestamp"]
    )
    discards.record(
        "orders",
        "delivered_before_purchase",
        IssueKind.INVALID_INPUT,
        int(bad_delivery.sum()),
        orders.loc[bad_delivery, "order_id"].head(5).tolist(),
    )
    orders.loc[bad_delivery, "order_delivered_customer_date"] = pd.NaT

    return orders.sort_values("order_id", kind="stable").reset_index(drop=True)


def _build_items(
    snapshot: Snapshot, orders: pd.DataFrame, discards: DiscardLog
) -> pd.DataFrame:
    items = _drop_duplicate_keys(
        snapshot.order_items, ["order_id", "order_item_id"], "order_items", discards
    )
    products = _drop_duplicate_keys(snapshot.products, ["product_id"], "products", discards)
    sellers = _drop_duplicate_keys(snapshot.sellers, ["seller_id"], "sellers", discards)

    items = _drop_children_of_discarded_orders(
        items, snapshot.orders, orders, "order_items", discards
    )
    items = _drop_unresolved(items, "order_id", orders["order_id"], "order_items", discards)
    items = _drop_unresolved(items, "product_id", products["product_id"], "order_items", discards)
    items = _drop_unresolved(items, "seller_id", sellers["seller_id"], "order_items", discards)

    # Negative or missing amounts only disqualify the row from money aggregates
    valid_amounts = (
        items["price"].notna()
        & items["freight_value"].notna()
        & (items["price"] >= 0)
        & (items["freight_value"] >= 0)
    )
    discards.record(
        "order_items",
        "invalid_price_or_freight",
        IssueKind.INVALID_INPUT,
        int((~valid_amounts).sum()),
        items.loc[~valid_amounts, "order_id"].head(5).tolist(),
    )
    items = items.assign(has_valid_amounts=valid_amounts)

    items = items.merge(
        orders[ORDER_FACT_COLUMNS], on="order_id", how="inner", validate="many_to_one"
    )
    items = items.merge(
        products[["product_id", "product_category_name"]],
        on="product_id",
        how="left",
        validate="many_to_one",
    )
    return items.sort_values(["order_id", "order_item_id"], kind="stable").reset_index(
        drop=True
    )


def _build_reviews(
    snapshot: Snapshot, orders: pd.DataFrame, discards: DiscardLog
) -> pd.DataFrame:
    reviews = _drop_duplicate_keys(
        snapshot.reviews, ["review_id", "order_id"], "reviews", discards
    )
    reviews = _drop_children_of_discarded_orders(
        reviews, snapshot.orders, orders, "reviews", discards
    )
    reviews = _drop_unresolved(reviews, "order_id", orders["order_id"], "reviews", discards)

    valid_score = reviews["review_score"].between(1, 5)
    discards.record(
        "reviews",
        "invalid_review_score",
        IssueKind.INVALID_INPUT,
        int((~valid_score).sum()),
        reviews.loc[~valid_score, "review_id"].head(5).tolist(),
    )
    return (
        reviews[valid_score]
        .sort_values(["order_id", "review_id"], kind="stable")
        .reset_index(drop=True)
    )


def resolve_geolocation(
    geolocation: pd.DataFrame, policy: str, discards: DiscardLog
) -> pd.DataFrame:
    """
    Reduce geolocation rows to coordinates per zip prefix.

    Policies:
    - mean: one row per prefix at the mean coordinate
    - first: one row per prefix, smallest (lat, lng) wins
    - fanout: every row kept, so a prefix can map to several points
    """
    prefix = "geolocation_zip_code_prefix"
    coords = ["geolocation_lat", "geolocation_lng"]

    usable = geolocation[prefix].notna() & geolocation[coords].notna().all(axis=1)
    discards.record(
        "geolocation",
        "missing_coordinates",
        IssueKind.INVALID_INPUT,
        int((~usable).sum()),
    )
    geo = geolocation.loc[usable, [prefix] + coords]

    if policy == "mean":
        resolved = geo.groupby(prefix, sort=True)[coords].mean().reset_index()
    elif policy == "first":
        resolved = geo.sort_values([prefix] + coords, kind="stable").drop_duplicates(prefix)
    elif policy == "fanout":
        resolved = geo.sort_values(prefix, kind="stable")
    else:
        raise ValueError(f"Unknown geo resolution policy: {policy}")

    return resolved.reset_index(drop=True)


def build_index(
    snapshot: Snapshot, settings: AnalyticsSettings | None = None
) -> OrderFactIndex:
    """Validate and join the snapshot once for all analyzers."""
    settings = settings or get_settings()
    discards = DiscardLog(stage="index")

    with log_duration(log, "index build"):
        orders = _build_orders(snapshot, discards)
        items = _build_items(snapshot, orders, discards)
        reviews = _build_reviews(snapshot, orders, discards)
        geo = resolve_geolocation(snapshot.geolocation, settings.geo_resolution, discards)

    index = OrderFactIndex(
        items=items,
        orders=orders,
        reviews=reviews,
        customer_order_counts=orders.groupby("customer_id").size(),
        unique_customer_order_counts=orders.groupby("customer_unique_id").size(),
        geo_by_prefix=geo,
        discards=discards,
    )

    log.info(
        f"Indexed {len(items):,} items across {len(orders):,} orders "
        f"({discards.total():,} rows discarded)"
    )
    for rec in discards.records:
        log.warning(f"Discarded {rec.count:,} {rec.entity} rows: {rec.reason}")

    return index
