"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from supplyops.config import CHURN_RISK_CUTOFF, SERVICE_LEVEL_Z_95, AnalyticsSettings


class TestAnalyticsSettings:
    def test_defaults(self, settings):
        assert settings.min_order_count_for_eoq == 5
        assert settings.holding_cost_fraction == 0.20
        assert settings.service_level_z == SERVICE_LEVEL_Z_95
        assert settings.min_delay_days == 5
        assert settings.churn_risk_cutoff == CHURN_RISK_CUTOFF
        assert settings.cluster_rounding_decimals == 1
        assert (settings.cluster_top_n_volume, settings.cluster_top_n_cost) == (5, 3)
        assert settings.min_co_purchase_count == 10
        assert settings.geo_resolution == "mean"
        assert settings.churn_customer_key == "customer_id"
        assert settings.dedupe_reviews is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SUPPLYOPS_MIN_CO_PURCHASE_COUNT", "3")
        monkeypatch.setenv("SUPPLYOPS_GEO_RESOLUTION", "first")
        monkeypatch.setenv("SUPPLYOPS_DEDUPE_REVIEWS", "true")

        settings = AnalyticsSettings(_env_file=None)

        assert settings.min_co_purchase_count == 3
        assert settings.geo_resolution == "first"
        assert settings.dedupe_reviews is True

    def test_unknown_geo_policy_rejected(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(_env_file=None, geo_resolution="median")

    def test_holding_cost_must_be_positive(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(_env_file=None, holding_cost_fraction=0)
