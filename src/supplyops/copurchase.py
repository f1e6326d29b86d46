"""
Cross-seller co-purchase and lost shipping margin.

When one order contains items from two different sellers, the buyer pays
two freight charges where one consolidated shipment would have cost the
larger of the two. The difference is the lost margin of that pair:

    lost_margin = (freight_a + freight_b) - max(freight_a, freight_b)

Pairs are generated per order only; items of different orders are never
combined.
"""

import threading
from collections import defaultdict
from itertools import combinations
from typing import Iterator, Optional

import pandas as pd

from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog
from .errors import AnalysisCancelled
from .index import OrderFactIndex
from .logging_config import get_logger
from .numeric import round_half_up

log = get_logger("copurchase")

SELLER_PAIR_COLUMNS = [
    "seller_a_id",
    "seller_b_id",
    "co_purchase_count",
    "total_lost_margin",
    "avg_lost_margin",
]
CATEGORY_PAIR_COLUMNS = [
    "category_a",
    "category_b",
    "co_purchase_count",
    "total_lost_margin",
    "avg_lost_margin",
]

PAIR_FIELDS = ["product_id", "seller_id", "freight_value", "product_category_name"]


class PairAccumulator:
    """Running count and lost-margin sum per pair key."""

    def __init__(self):
        self.counts: dict[tuple, int] = defaultdict(int)
        self.totals: dict[tuple, float] = defaultdict(float)

    def add(self, key: tuple, lost_margin: float) -> None:
        self.counts[key] += 1
        self.totals[key] += lost_margin

    def merge(self, other: "PairAccumulator") -> "PairAccumulator":
        for key, count in other.counts.items():
            self.counts[key] += count
            self.totals[key] += other.totals[key]
        return self

    def to_frame(self, key_columns: list[str], min_count: int) -> pd.DataFrame:
        rows = [
            (*key, count, self.totals[key])
            for key, count in self.counts.items()
            if count >= min_count
        ]
        frame = pd.DataFrame(
            rows, columns=[*key_columns, "co_purchase_count", "total_lost_margin"]
        )
        frame["co_purchase_count"] = frame["co_purchase_count"].astype("int64")
        frame["avg_lost_margin"] = round_half_up(
            frame["total_lost_margin"] / frame["co_purchase_count"], 2
        )
        frame["total_lost_margin"] = round_half_up(frame["total_lost_margin"], 2)
        return frame


def iter_order_pairs(rows: list[tuple]) -> Iterator[tuple[tuple, tuple, float]]:
    """
    Yield (a, b, lost_margin) for cross-seller pairs within one order.

    Each row is (product_id, seller_id, freight, category). Pairs are
    oriented so that a.product_id < b.product_id; pairs of the same product
    or the same seller are skipped.
    """
    for first, second in combinations(rows, 2):
        if first[0] == second[0]:
            continue
        a, b = (first, second) if first[0] < second[0] else (second, first)
        if a[1] == b[1]:
            continue
        yield a, b, (a[2] + b[2]) - max(a[2], b[2])


def multi_seller_items(index: OrderFactIndex) -> pd.DataFrame:
    """Items of orders that involve at least two sellers (the only ones that pair)."""
    items = index.items[index.items["has_valid_amounts"]]
    sellers_per_order = items.groupby("order_id")["seller_id"].transform("nunique")
    return items[sellers_per_order > 1]


def accumulate_pairs(
    items: pd.DataFrame,
    cancel_event: Optional[threading.Event] = None,
) -> tuple[PairAccumulator, PairAccumulator]:
    """
    Walk orders one at a time and accumulate seller-pair and category-pair totals.

    Raises:
        AnalysisCancelled: cancel_event was set; partial totals are dropped.
    """
    by_seller = PairAccumulator()
    by_category = PairAccumulator()

    for processed, (_, group) in enumerate(items.groupby("order_id", sort=True)):
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled(details={"orders_processed": processed})

        rows = list(group[PAIR_FIELDS].itertuples(index=False, name=None))
        for a, b, lost_margin in iter_order_pairs(rows):
            by_seller.add((a[1], b[1]), lost_margin)
            cat_a, cat_b = a[3], b[3]
            if pd.notna(cat_a) and pd.notna(cat_b) and cat_a != cat_b:
                by_category.add((cat_a, cat_b), lost_margin)

    return by_seller, by_category


def compute_copurchase_margins(
    index: OrderFactIndex,
    settings: AnalyticsSettings | None = None,
    discards: DiscardLog | None = None,
    cancel_event: Optional[threading.Event] = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Lost shipping margin per seller pair and per category pair.

    Seller pairs keep the orientation given by the product-id ordering, so
    the same two sellers can appear under either label. Category pairs
    require two different categories. Both require at least
    min_co_purchase_count occurrences.

    Returns (seller pairs by total_lost_margin desc, category pairs by
    co_purchase_count desc).
    """
    settings = settings or get_settings()

    items = multi_seller_items(index)
    log.debug(
        f"{items['order_id'].nunique():,} orders span more than one seller"
    )
    by_seller, by_category = accumulate_pairs(items, cancel_event)

    min_count = settings.min_co_purchase_count
    seller_pairs = by_seller.to_frame(["seller_a_id", "seller_b_id"], min_count)
    seller_pairs = seller_pairs.sort_values(
        ["total_lost_margin", "co_purchase_count", "seller_a_id", "seller_b_id"],
        ascending=[False, False, True, True],
        kind="stable",
    )

    category_pairs = by_category.to_frame(["category_a", "category_b"], min_count)
    category_pairs = category_pairs.sort_values(
        ["co_purchase_count", "total_lost_margin", "category_a", "category_b"],
        ascending=[False, False, True, True],
        kind="stable",
    )

    log.info(
        f"Found {len(by_seller.counts):,} seller pairs "
        f"({len(seller_pairs):,} reported) and {len(by_category.counts):,} "
        f"category pairs ({len(category_pairs):,} reported)"
    )
    return (
        seller_pairs[SELLER_PAIR_COLUMNS].reset_index(drop=True),
        category_pairs[CATEGORY_PAIR_COLUMNS].reset_index(drop=True),
    )
