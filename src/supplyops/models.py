"""
Typed rows of the report tables handed to downstream consumers.

Numbers the pipeline cannot compute (zero divisors) arrive as None.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

SectionStatus = Literal["ok", "empty", "failed", "cancelled"]


class InventoryPolicyRow(BaseModel):
    """Reorder parameters for one product."""

    product_id: str
    product_category_name: Optional[str] = None
    item_count: int = Field(description="Delivered items used for the estimate")
    annual_demand: float = Field(ge=0, description="Items per year, 2 decimals")
    avg_lead_time_days: float = Field(description="Mean purchase-to-delivery days")
    lead_time_sigma: float = Field(ge=0, description="Sample std of lead time (days)")
    eoq: int = Field(ge=0, description="Economic order quantity")
    safety_stock: int = Field(ge=0)
    reorder_point: int = Field(ge=0)


class _MonthlySplit(BaseModel):
    """Share of the year's units bought in each month (percent, 2 decimals)."""

    jan_pct: Optional[float] = None
    feb_pct: Optional[float] = None
    mar_pct: Optional[float] = None
    apr_pct: Optional[float] = None
    may_pct: Optional[float] = None
    jun_pct: Optional[float] = None
    jul_pct: Optional[float] = None
    aug_pct: Optional[float] = None
    sep_pct: Optional[float] = None
    oct_pct: Optional[float] = None
    nov_pct: Optional[float] = None
    dec_pct: Optional[float] = None
    total_yearly_units: int = Field(ge=0)


class ProductTrendRow(_MonthlySplit):
    product_id: str
    year: int


class CategoryTrendRow(_MonthlySplit):
    product_category_name: str
    year: int
    yoy_growth_pct: Optional[float] = Field(
        default=None, description="Growth vs the previous reported year; None without one"
    )


class DemandClusterRow(BaseModel):
    """One grid cell of customer demand."""

    cluster_lat: float
    cluster_lng: float
    total_orders: int = Field(description="Item rows placed in the cell")
    total_shipping_cost: float


class SellerRiskRow(BaseModel):
    seller_id: str
    delayed_orders: int = Field(ge=1)
    churned_orders: int = Field(ge=0)
    churn_probability: float = Field(ge=0, le=1)
    risk_flag: Literal["HIGH RISK", "LOW RISK"]


class SellerPairMarginRow(BaseModel):
    """Freight lost to split shipments between two sellers."""

    seller_a_id: str
    seller_b_id: str
    co_purchase_count: int
    total_lost_margin: float = Field(ge=0)
    avg_lost_margin: float = Field(ge=0)


class CategoryPairMarginRow(BaseModel):
    category_a: str
    category_b: str
    co_purchase_count: int
    total_lost_margin: float = Field(ge=0)
    avg_lost_margin: float = Field(ge=0)


TABLE_MODELS: dict[str, type[BaseModel]] = {
    "inventory_policy": InventoryPolicyRow,
    "product_trends": ProductTrendRow,
    "category_trends": CategoryTrendRow,
    "clusters_by_volume": DemandClusterRow,
    "clusters_by_cost": DemandClusterRow,
    "seller_risk": SellerRiskRow,
    "seller_pair_margin": SellerPairMarginRow,
    "category_pair_margin": CategoryPairMarginRow,
}
