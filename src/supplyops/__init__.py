# Operational analytics core for marketplace order data
# Index once, run the five analyzers, assemble one report

from .config import AnalyticsSettings, get_settings
from .schema import Snapshot
from .diagnostics import DiscardLog, DiscardRecord, IssueKind
from .errors import SupplyOpsError, InsufficientDataError, AnalysisCancelled
from .index import OrderFactIndex, build_index
from .inventory import compute_inventory_policy
from .trends import compute_product_trends, compute_category_trends
from .geo import compute_demand_clusters
from .seller_risk import compute_seller_risk
from .copurchase import compute_copurchase_margins
from .report import ReportAssembler, OperationsReport, ReportSection
from .logging_config import setup_logging

__all__ = [
    "AnalyticsSettings",
    "get_settings",
    "Snapshot",
    "DiscardLog",
    "DiscardRecord",
    "IssueKind",
    "SupplyOpsError",
    "InsufficientDataError",
    "AnalysisCancelled",
    "OrderFactIndex",
    "build_index",
    "compute_inventory_policy",
    "compute_product_trends",
    "compute_category_trends",
    "compute_demand_clusters",
    "compute_seller_risk",
    "compute_copurchase_margins",
    "ReportAssembler",
    "OperationsReport",
    "ReportSection",
    "setup_logging",
]
