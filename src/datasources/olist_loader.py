"""
Snapshot loader for the public Olist marketplace CSV exports.

THIS FILE CONTAINS SOURCE-SPECIFIC LOGIC:
- File names of the Kaggle "Brazilian E-Commerce Public Dataset by Olist"
- Optional English category translation file
- Zip prefixes stored as integers (leading zeros lost)

To adapt for another marketplace export:
1. Copy this file as a template
2. Update FILE_NAMES and the column renames in each loader method
3. Return a Snapshot; the analytics core needs nothing else
"""

from pathlib import Path
import pandas as pd

from supplyops.logging_config import get_logger
from supplyops.schema import Snapshot

log = get_logger("loader")


class OlistCsvLoader:
    """
    Loads the eight Olist CSV files into an immutable Snapshot.

    Source quirks handled:
    - Zip prefixes are read as text so they can be re-padded to 5 digits
    - Product categories are in Portuguese; the translation file, when
      present, replaces them with English names
    - Geolocation holds many rows per zip prefix (resolved by the core)
    """

    FILE_NAMES = {
        "customers": "olist_customers_dataset.csv",
        "orders": "olist_orders_dataset.csv",
        "products": "olist_products_dataset.csv",
        "sellers": "olist_sellers_dataset.csv",
        "order_items": "olist_order_items_dataset.csv",
        "payments": "olist_order_payments_dataset.csv",
        "reviews": "olist_order_reviews_dataset.csv",
        "geolocation": "olist_geolocation_dataset.csv",
    }
    TRANSLATION_FILE = "product_category_name_translation.csv"

    # Read as text to keep ids and zip prefixes intact
    TEXT_COLUMNS = [
        "customer_id",
        "customer_unique_id",
        "customer_zip_code_prefix",
        "order_id",
        "product_id",
        "seller_id",
        "seller_zip_code_prefix",
        "review_id",
        "geolocation_zip_code_prefix",
    ]

    def __init__(self, data_dir: Path | str, translate_categories: bool = True):
        self.data_dir = Path(data_dir)
        self.translate_categories = translate_categories

    def load_all(self) -> Snapshot:
        """Load every entity file and build the snapshot."""
        missing = [
            name for name in self.FILE_NAMES.values() if not (self.data_dir / name).exists()
        ]
        if missing:
            raise FileNotFoundError(
                f"Missing Olist export files in {self.data_dir}: {', '.join(missing)}"
            )

        frames = {entity: self._read(entity) for entity in self.FILE_NAMES}
        frames["products"] = self.load_products(frames["products"])

        snapshot = Snapshot.from_frames(**frames)
        log.info(
            "Loaded snapshot: "
            + ", ".join(f"{k}={v:,}" for k, v in snapshot.row_counts().items())
        )
        return snapshot

    def _read(self, entity: str) -> pd.DataFrame:
        path = self.data_dir / self.FILE_NAMES[entity]
        df = pd.read_csv(path, dtype={c: "string" for c in self.TEXT_COLUMNS})
        log.debug(f"Read {len(df):,} rows from {path.name}")
        return df

    def load_products(self, products: pd.DataFrame) -> pd.DataFrame:
        """
        Keep product id and category, translated to English when possible.

        Categories without a translation keep their original name.
        """
        products = products[["product_id", "product_category_name"]].copy()
        translation_path = self.data_dir / self.TRANSLATION_FILE
        if not self.translate_categories or not translation_path.exists():
            return products

        translation = pd.read_csv(translation_path)
        mapping = dict(
            zip(
                translation["product_category_name"],
                translation["product_category_name_english"],
            )
        )
        translated = products["product_category_name"].map(mapping)
        products["product_category_name"] = translated.fillna(
            products["product_category_name"]
        )
        return products
