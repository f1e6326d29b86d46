"""Test configuration and fixtures."""

import pandas as pd
import pytest

from supplyops.config import AnalyticsSettings
from supplyops.index import build_index
from supplyops.schema import Snapshot

BASE_DATE = pd.Timestamp("2018-01-01 10:00:00")


def day(n: float, hours: float = 0) -> pd.Timestamp:
    """Timestamp n days (plus hours) after BASE_DATE."""
    return BASE_DATE + pd.Timedelta(days=n, hours=hours)


class SnapshotBuilder:
    """
    Fluent helper for small in-memory snapshots.

    Customers, products and sellers are created on first mention, so a test
    only spells out the rows it cares about.
    """

    def __init__(self):
        self.customers: list[dict] = []
        self.orders: list[dict] = []
        self.products: dict[str, dict] = {}
        self.sellers: dict[str, dict] = {}
        self.items: list[dict] = []
        self.reviews: list[dict] = []
        self.geolocation: list[dict] = []

    def customer(self, customer_id, unique_id=None, zip_prefix="01001"):
        self.customers.append(
            {
                "customer_id": customer_id,
                "customer_unique_id": unique_id or f"person-{customer_id}",
                "customer_zip_code_prefix": zip_prefix,
                "customer_city": "sao paulo",
                "customer_state": "SP",
            }
        )
        return self

    def order(
        self,
        order_id,
        customer_id=None,
        purchased=None,
        status="delivered",
        carrier=None,
        delivered=None,
        zip_prefix="01001",
        unique_id=None,
    ):
        customer_id = customer_id or f"cust-{order_id}"
        if customer_id not in {c["customer_id"] for c in self.customers}:
            self.customer(customer_id, unique_id=unique_id, zip_prefix=zip_prefix)
        purchased = BASE_DATE if purchased is None else purchased
        self.orders.append(
            {
                "order_id": order_id,
                "customer_id": customer_id,
                "order_status": status,
                "order_purchase_timestamp": purchased,
                "order_approved_at": purchased,
                "order_delivered_carrier_date": carrier,
                "order_delivered_customer_date": delivered,
                "order_estimated_delivery_date": None,
            }
        )
        return self

    def item(
        self,
        order_id,
        product_id,
        seller_id="seller-1",
        price=50.0,
        freight=10.0,
        shipping_limit=None,
        category="housewares",
    ):
        self.products.setdefault(
            product_id, {"product_id": product_id, "product_category_name": category}
        )
        self.sellers.setdefault(
            seller_id,
            {
                "seller_id": seller_id,
                "seller_zip_code_prefix": "02002",
                "seller_city": "campinas",
                "seller_state": "SP",
            },
        )
        item_no = sum(1 for i in self.items if i["order_id"] == order_id) + 1
        self.items.append(
            {
                "order_id": order_id,
                "order_item_id": item_no,
                "product_id": product_id,
                "seller_id": seller_id,
                "shipping_limit_date": shipping_limit if shipping_limit is not None else BASE_DATE,
                "price": price,
                "freight_value": freight,
            }
        )
        return self

    def review(self, order_id, score, review_id=None, created=None):
        self.reviews.append(
            {
                "review_id": review_id or f"rev-{order_id}-{len(self.reviews)}",
                "order_id": order_id,
                "review_score": score,
                "review_creation_date": created if created is not None else BASE_DATE,
                "review_answer_timestamp": None,
            }
        )
        return self

    def geo(self, zip_prefix, lat, lng):
        self.geolocation.append(
            {
                "geolocation_zip_code_prefix": zip_prefix,
                "geolocation_lat": lat,
                "geolocation_lng": lng,
                "geolocation_city": "sao paulo",
                "geolocation_state": "SP",
            }
        )
        return self

    def build(self) -> Snapshot:
        return Snapshot.from_frames(
            customers=pd.DataFrame(self.customers),
            orders=pd.DataFrame(self.orders),
            products=pd.DataFrame(list(self.products.values())),
            sellers=pd.DataFrame(list(self.sellers.values())),
            order_items=pd.DataFrame(self.items),
            reviews=pd.DataFrame(self.reviews),
            geolocation=pd.DataFrame(self.geolocation),
        )


@pytest.fixture
def builder() -> SnapshotBuilder:
    return SnapshotBuilder()


@pytest.fixture
def settings() -> AnalyticsSettings:
    """Default settings, isolated from any local .env or SUPPLYOPS_* variables."""
    return AnalyticsSettings(_env_file=None)


@pytest.fixture
def make_index(settings):
    """Build an index from a SnapshotBuilder (optionally with other settings)."""

    def _make(snapshot_builder: SnapshotBuilder, custom_settings=None):
        return build_index(snapshot_builder.build(), custom_settings or settings)

    return _make


@pytest.fixture
def marketplace(builder) -> SnapshotBuilder:
    """
    A small marketplace touching every analyzer:
    - 8 delivered orders of one product (reorder policy)
    - two categories over two years (trends)
    - two customer regions (clusters)
    - late shipments with poor reviews (seller risk)
    - multi-seller baskets (co-purchase)
    """
    builder.geo("01001", -23.55, -46.63).geo("20020", -22.90, -43.17)

    for n in range(8):
        order_id = f"inv-{n}"
        builder.order(
            order_id,
            purchased=day(n * 20),
            delivered=day(n * 20 + 4 + n % 3),
            carrier=day(n * 20 + 1),
        )
        builder.item(order_id, "prod-a", "seller-1", price=80.0, freight=12.0, shipping_limit=day(n * 20 + 2))
        builder.review(order_id, 5)

    for n in range(4):
        order_id = f"late-{n}"
        builder.order(
            order_id,
            purchased=day(400 + n),
            carrier=day(400 + n + 9),
            delivered=day(400 + n + 15),
            zip_prefix="20020",
        )
        builder.item(order_id, "prod-b", "seller-2", price=30.0, freight=8.0, shipping_limit=day(400 + n + 2), category="toys")
        builder.item(order_id, "prod-c", "seller-3", price=20.0, freight=5.0, shipping_limit=day(400 + n + 2), category="garden")
        builder.review(order_id, 1 if n < 2 else 4)

    return builder
