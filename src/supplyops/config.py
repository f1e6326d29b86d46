"""Threshold and behaviour settings for the analytics run."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# z-score for a 95% cycle service level
SERVICE_LEVEL_Z_95 = 1.65

CHURN_RISK_CUTOFF = 0.30


class AnalyticsSettings(BaseSettings):
    """
    Every tunable of the pipeline, overridable via SUPPLYOPS_* env vars.

    Defaults match the standard report thresholds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPPLYOPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Inventory optimizer
    min_order_count_for_eoq: int = Field(
        default=5, ge=0, description="Products with this many items or fewer are skipped"
    )
    holding_cost_fraction: float = Field(
        default=0.20, gt=0, le=1, description="Annual holding cost as a share of price"
    )
    service_level_z: float = Field(
        default=SERVICE_LEVEL_Z_95, ge=0, description="z-score of the target service level"
    )
    delivered_status: str = Field(default="delivered")

    # Seller risk
    min_delay_days: int = Field(
        default=5, description="Carrier handoff this many days after the limit counts as delayed"
    )
    churn_risk_cutoff: float = Field(default=CHURN_RISK_CUTOFF, ge=0, le=1)
    churn_customer_key: Literal["customer_id", "customer_unique_id"] = Field(
        default="customer_id",
        description="Identity used to decide whether a buyer ordered only once",
    )
    dedupe_reviews: bool = Field(
        default=False,
        description="Keep only the latest review per order instead of one row per review",
    )

    # Geospatial clusters
    cluster_rounding_decimals: int = Field(default=1, ge=0, le=6)
    cluster_top_n_volume: int = Field(default=5, ge=1)
    cluster_top_n_cost: int = Field(default=3, ge=1)
    geo_resolution: Literal["mean", "first", "fanout"] = Field(
        default="mean",
        description="How zip prefixes with several geolocation rows are resolved",
    )

    # Co-purchase margin
    min_co_purchase_count: int = Field(default=10, ge=1)

    # Runtime
    max_workers: int = Field(default=5, ge=1)
    log_level: str = Field(default="INFO")


@lru_cache()
def get_settings() -> AnalyticsSettings:
    """Get cached settings instance."""
    return AnalyticsSettings()
