# Source-specific data adapters
# Each module turns one export format into a supplyops Snapshot

from .olist_loader import OlistCsvLoader

__all__ = ["OlistCsvLoader"]
