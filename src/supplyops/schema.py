"""
Column layout for the eight entity collections supplied to the core.

Column names follow the public Olist marketplace exports so a snapshot can
be built straight from those files. The core only reads these frames.
"""

from dataclasses import dataclass, fields
import pandas as pd


CUSTOMER_COLUMNS = [
    "customer_id",
    "customer_unique_id",
    "customer_zip_code_prefix",
    "customer_city",
    "customer_state",
]

ORDER_COLUMNS = [
    "order_id",
    "customer_id",
    "order_status",
    "order_purchase_timestamp",
    "order_approved_at",
    "order_delivered_carrier_date",
    "order_delivered_customer_date",
    "order_estimated_delivery_date",
]

PRODUCT_COLUMNS = ["product_id", "product_category_name"]

SELLER_COLUMNS = [
    "seller_id",
    "seller_zip_code_prefix",
    "seller_city",
    "seller_state",
]

ORDER_ITEM_COLUMNS = [
    "order_id",
    "order_item_id",
    "product_id",
    "seller_id",
    "shipping_limit_date",
    "price",
    "freight_value",
]

PAYMENT_COLUMNS = ["order_id", "payment_sequential", "payment_type", "payment_value"]

REVIEW_COLUMNS = [
    "review_id",
    "order_id",
    "review_score",
    "review_creation_date",
    "review_answer_timestamp",
]

GEOLOCATION_COLUMNS = [
    "geolocation_zip_code_prefix",
    "geolocation_lat",
    "geolocation_lng",
    "geolocation_city",
    "geolocation_state",
]

# Per-entity coercion rules
TIMESTAMP_COLUMNS = {
    "orders": [
        "order_purchase_timestamp",
        "order_approved_at",
        "order_delivered_carrier_date",
        "order_delivered_customer_date",
        "order_estimated_delivery_date",
    ],
    "order_items": ["shipping_limit_date"],
    "reviews": ["review_creation_date", "review_answer_timestamp"],
}

NUMERIC_COLUMNS = {
    "order_items": ["order_item_id", "price", "freight_value"],
    "payments": ["payment_sequential", "payment_value"],
    "reviews": ["review_score"],
    "geolocation": ["geolocation_lat", "geolocation_lng"],
}

ZIP_PREFIX_COLUMNS = {
    "customers": "customer_zip_code_prefix",
    "sellers": "seller_zip_code_prefix",
    "geolocation": "geolocation_zip_code_prefix",
}

ENTITY_COLUMNS = {
    "customers": CUSTOMER_COLUMNS,
    "orders": ORDER_COLUMNS,
    "products": PRODUCT_COLUMNS,
    "sellers": SELLER_COLUMNS,
    "order_items": ORDER_ITEM_COLUMNS,
    "payments": PAYMENT_COLUMNS,
    "reviews": REVIEW_COLUMNS,
    "geolocation": GEOLOCATION_COLUMNS,
}

ZIP_PREFIX_WIDTH = 5


def normalize_zip_prefix(series: pd.Series) -> pd.Series:
    """Zip prefixes arrive as ints or strings; compare them as 5-char strings."""
    as_text = series.astype("string").str.strip()
    # Numeric exports lose leading zeros and may carry a trailing ".0"
    as_text = as_text.str.replace(r"\.0$", "", regex=True)
    return as_text.str.zfill(ZIP_PREFIX_WIDTH)


def conform_frame(df: pd.DataFrame | None, entity: str) -> pd.DataFrame:
    """
    Return a typed copy of an entity frame with every expected column present.

    Missing optional columns are added as nulls. Unparseable timestamps and
    numbers become NaT/NaN and are dealt with by the index builder.
    """
    columns = ENTITY_COLUMNS[entity]
    result = pd.DataFrame(columns=columns) if df is None else df.copy()

    for col in columns:
        if col not in result.columns:
            result[col] = None

    for col in TIMESTAMP_COLUMNS.get(entity, []):
        result[col] = pd.to_datetime(result[col], errors="coerce")

    for col in NUMERIC_COLUMNS.get(entity, []):
        result[col] = pd.to_numeric(result[col], errors="coerce").astype("float64")

    zip_col = ZIP_PREFIX_COLUMNS.get(entity)
    if zip_col:
        result[zip_col] = normalize_zip_prefix(result[zip_col])

    return result.reset_index(drop=True)


@dataclass(frozen=True)
class Snapshot:
    """Immutable set of entity frames for one analytics run."""

    customers: pd.DataFrame
    orders: pd.DataFrame
    products: pd.DataFrame
    sellers: pd.DataFrame
    order_items: pd.DataFrame
    payments: pd.DataFrame
    reviews: pd.DataFrame
    geolocation: pd.DataFrame

    @classmethod
    def from_frames(cls, **frames: pd.DataFrame | None) -> "Snapshot":
        """Build a snapshot from raw frames; entities not supplied are empty."""
        unknown = set(frames) - set(ENTITY_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown entity frames: {sorted(unknown)}")
        return cls(
            **{name: conform_frame(frames.get(name), name) for name in ENTITY_COLUMNS}
        )

    def row_counts(self) -> dict[str, int]:
        return {f.name: len(getattr(self, f.name)) for f in fields(self)}
