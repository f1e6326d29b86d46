"""
Geospatial demand clusters.

Customer locations are bucketed into a coarse lat/lng grid (coordinates cut
to `cluster_rounding_decimals` decimals toward zero). Each bucket counts
item rows, not distinct orders, and sums their freight.
"""

import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog, IssueKind
from .errors import InsufficientDataError
from .index import OrderFactIndex
from .logging_config import get_logger
from .numeric import round_half_up, truncate_coordinate

log = get_logger("geo")

OUTPUT_COLUMNS = ["cluster_lat", "cluster_lng", "total_orders", "total_shipping_cost"]


def locate_items(
    index: OrderFactIndex, discards: DiscardLog
) -> pd.DataFrame:
    """Attach customer coordinates to every item (fan-out if the geo policy keeps it)."""
    items = index.items
    geo = index.geo_by_prefix.rename(
        columns={"geolocation_zip_code_prefix": "customer_zip_code_prefix"}
    )

    located = items.merge(geo, on="customer_zip_code_prefix", how="inner")

    unresolved = ~items["customer_zip_code_prefix"].isin(geo["customer_zip_code_prefix"])
    discards.record(
        "order_items",
        "unresolved_customer_zip_prefix",
        IssueKind.UNRESOLVED_REFERENCE,
        int(unresolved.sum()),
        items.loc[unresolved, "customer_zip_code_prefix"].drop_duplicates().head(5).tolist(),
    )
    return located


def cluster_demand(located: pd.DataFrame, decimals: int) -> pd.DataFrame:
    """
    Aggregate located items per grid cell, in first-seen order of the cell.

    Items with invalid freight still count toward volume but not cost.
    """
    cells = located.assign(
        cluster_lat=truncate_coordinate(located["geolocation_lat"], decimals),
        cluster_lng=truncate_coordinate(located["geolocation_lng"], decimals),
        shipping_cost=located["freight_value"].where(located["has_valid_amounts"]),
    )
    clusters = (
        cells.groupby(["cluster_lat", "cluster_lng"], sort=False)
        .agg(
            total_orders=("order_id", "size"),
            total_shipping_cost=("shipping_cost", "sum"),
        )
        .reset_index()
    )
    clusters["total_orders"] = clusters["total_orders"].astype("int64")
    clusters["total_shipping_cost"] = round_half_up(clusters["total_shipping_cost"], 2)
    return clusters[OUTPUT_COLUMNS]


def compute_demand_clusters(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Rank grid cells by volume and by shipping cost.

    Returns (top cells by total_orders, top cells by total_shipping_cost).
    Ties keep the order in which cells were first seen.

    Raises:
        InsufficientDataError: no item could be placed on the grid.
    """
    settings = settings or get_settings()
    discards = discards if discards is not None else DiscardLog(stage="geo")

    located = locate_items(index, discards)
    if len(located) == 0:
        raise InsufficientDataError(
            "No order item could be matched to a customer location",
            details={"items": len(index.items), "geo_prefixes": len(index.geo_by_prefix)},
        )

    clusters = cluster_demand(located, settings.cluster_rounding_decimals)
    log.info(f"Placed {len(located):,} items into {len(clusters):,} clusters")

    by_volume = clusters.sort_values("total_orders", ascending=False, kind="stable").head(
        settings.cluster_top_n_volume
    )
    by_cost = clusters.sort_values(
        "total_shipping_cost", ascending=False, kind="stable"
    ).head(settings.cluster_top_n_cost)
    return by_volume.reset_index(drop=True), by_cost.reset_index(drop=True)
