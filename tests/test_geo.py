"""Tests for demand clustering."""

import pytest

from supplyops.config import AnalyticsSettings
from supplyops.diagnostics import DiscardLog
from supplyops.errors import InsufficientDataError
from supplyops.geo import OUTPUT_COLUMNS, compute_demand_clusters


def ship_to(builder, zip_prefix, items=1, freight=10.0):
    order_id = f"o-{len(builder.orders)}"
    builder.order(order_id, zip_prefix=zip_prefix)
    for n in range(items):
        builder.item(order_id, f"p-{n}", freight=freight)
    return builder


class TestClusters:
    def test_nearby_customers_share_a_cell(self, builder, make_index, settings):
        builder.geo("11111", 12.34, -45.67).geo("22222", 12.36, -45.61)
        ship_to(builder, "11111", freight=10.0)
        ship_to(builder, "22222", freight=15.0)

        by_volume, by_cost = compute_demand_clusters(make_index(builder), settings)

        assert list(by_volume.columns) == OUTPUT_COLUMNS
        assert len(by_volume) == 1
        cell = by_volume.iloc[0]
        assert cell["cluster_lat"] == pytest.approx(12.3)
        assert cell["cluster_lng"] == pytest.approx(-45.6)
        assert cell["total_orders"] == 2
        assert cell["total_shipping_cost"] == 25.0
        assert by_cost.iloc[0]["total_shipping_cost"] == 25.0

    def test_counts_items_not_orders(self, builder, make_index, settings):
        builder.geo("11111", -23.5, -46.6)
        ship_to(builder, "11111", items=3)

        by_volume, _ = compute_demand_clusters(make_index(builder), settings)

        assert by_volume.iloc[0]["total_orders"] == 3

    def test_invalid_freight_counts_for_volume_only(self, builder, make_index, settings):
        builder.geo("11111", -23.5, -46.6)
        ship_to(builder, "11111", freight=10.0)
        ship_to(builder, "11111", freight=-4.0)

        by_volume, _ = compute_demand_clusters(make_index(builder), settings)

        assert by_volume.iloc[0]["total_orders"] == 2
        assert by_volume.iloc[0]["total_shipping_cost"] == 10.0


class TestRanking:
    def test_top_n_limits(self, builder, make_index, settings):
        for n in range(7):
            prefix = f"{n + 10:05d}"
            builder.geo(prefix, -10.0 - n, -40.0)
            ship_to(builder, prefix, items=n + 1, freight=float(10 - n))

        by_volume, by_cost = compute_demand_clusters(make_index(builder), settings)

        assert len(by_volume) == 5
        assert len(by_cost) == 3
        assert by_volume["total_orders"].tolist() == [7, 6, 5, 4, 3]
        assert by_cost["total_shipping_cost"].is_monotonic_decreasing

    def test_ties_keep_first_seen_order(self, builder, make_index):
        custom = AnalyticsSettings(_env_file=None, cluster_top_n_volume=2)
        builder.geo("11111", -10.0, -40.0).geo("22222", -20.0, -40.0).geo("33333", -30.0, -40.0)
        ship_to(builder, "11111")
        ship_to(builder, "22222")
        ship_to(builder, "33333")

        by_volume, _ = compute_demand_clusters(make_index(builder, custom), custom)

        assert by_volume["cluster_lat"].tolist() == [-10.0, -20.0]

    def test_fanout_policy_counts_every_coordinate(self, builder, make_index):
        custom = AnalyticsSettings(_env_file=None, geo_resolution="fanout")
        builder.geo("11111", -10.0, -40.0).geo("11111", -30.0, -40.0)
        ship_to(builder, "11111")

        by_volume, _ = compute_demand_clusters(make_index(builder, custom), custom)

        assert by_volume["total_orders"].sum() == 2


class TestMissingLocations:
    def test_unlocated_items_are_tallied(self, builder, make_index, settings):
        builder.geo("11111", -10.0, -40.0)
        ship_to(builder, "11111")
        ship_to(builder, "99999", items=2)
        discards = DiscardLog(stage="geo")

        by_volume, _ = compute_demand_clusters(make_index(builder), settings, discards)

        assert by_volume["total_orders"].sum() == 1
        assert discards.count_for("order_items", "unresolved_customer_zip_prefix") == 2

    def test_nothing_located_raises(self, builder, make_index, settings):
        ship_to(builder, "99999")

        with pytest.raises(InsufficientDataError) as exc_info:
            compute_demand_clusters(make_index(builder), settings)

        assert exc_info.value.error_code == "INSUFFICIENT_DATA"
