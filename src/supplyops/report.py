"""
Report assembler.

Builds the join index once, runs the five analyzers side by side and
collects their tables into one OperationsReport. A failing analyzer only
empties its own section; the others still complete.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel

from . import copurchase, geo, inventory, seller_risk, trends
from .config import AnalyticsSettings, get_settings
from .diagnostics import DiscardLog
from .errors import AnalysisCancelled, InsufficientDataError
from .index import OrderFactIndex, build_index
from .logging_config import get_logger, log_duration
from .models import TABLE_MODELS, SectionStatus
from .schema import Snapshot

log = get_logger("report")

TABLE_COLUMNS = {
    "inventory_policy": inventory.OUTPUT_COLUMNS,
    "product_trends": trends.PRODUCT_OUTPUT_COLUMNS,
    "category_trends": trends.CATEGORY_OUTPUT_COLUMNS,
    "clusters_by_volume": geo.OUTPUT_COLUMNS,
    "clusters_by_cost": geo.OUTPUT_COLUMNS,
    "seller_risk": seller_risk.OUTPUT_COLUMNS,
    "seller_pair_margin": copurchase.SELLER_PAIR_COLUMNS,
    "category_pair_margin": copurchase.CATEGORY_PAIR_COLUMNS,
}

SECTION_TABLES = {
    "inventory": ["inventory_policy"],
    "trends": ["product_trends", "category_trends"],
    "geo": ["clusters_by_volume", "clusters_by_cost"],
    "seller_risk": ["seller_risk"],
    "copurchase": ["seller_pair_margin", "category_pair_margin"],
}

AnalyzerFn = Callable[
    [OrderFactIndex, AnalyticsSettings, DiscardLog, Optional[threading.Event]],
    dict[str, pd.DataFrame],
]


def _run_inventory(index, settings, discards, cancel_event):
    return {"inventory_policy": inventory.compute_inventory_policy(index, settings, discards)}


def _run_trends(index, settings, discards, cancel_event):
    return {
        "product_trends": trends.compute_product_trends(index, settings, discards),
        "category_trends": trends.compute_category_trends(index, settings, discards),
    }


def _run_geo(index, settings, discards, cancel_event):
    by_volume, by_cost = geo.compute_demand_clusters(index, settings, discards)
    return {"clusters_by_volume": by_volume, "clusters_by_cost": by_cost}


def _run_seller_risk(index, settings, discards, cancel_event):
    return {"seller_risk": seller_risk.compute_seller_risk(index, settings, discards)}


def _run_copurchase(index, settings, discards, cancel_event):
    seller_pairs, category_pairs = copurchase.compute_copurchase_margins(
        index, settings, discards, cancel_event=cancel_event
    )
    return {"seller_pair_margin": seller_pairs, "category_pair_margin": category_pairs}


ANALYZERS: dict[str, AnalyzerFn] = {
    "inventory": _run_inventory,
    "trends": _run_trends,
    "geo": _run_geo,
    "seller_risk": _run_seller_risk,
    "copurchase": _run_copurchase,
}


def empty_table(name: str) -> pd.DataFrame:
    return pd.DataFrame(columns=TABLE_COLUMNS[name])


def frame_to_rows(name: str, df: pd.DataFrame) -> list[BaseModel]:
    """Validate a report table into its row model; NaN/NA become None."""
    model = TABLE_MODELS[name]
    cleaned = df.astype(object).where(df.notna(), None)
    return [
        model(**{k: v.item() if isinstance(v, np.generic) else v for k, v in record.items()})
        for record in cleaned.to_dict("records")
    ]


@dataclass
class ReportSection:
    """Output of one analyzer, plus what happened while producing it."""

    name: str
    tables: dict[str, pd.DataFrame] = field(default_factory=dict)
    status: SectionStatus = "ok"
    note: str = ""
    discards: DiscardLog = field(default_factory=lambda: DiscardLog(stage="section"))
    error: dict | None = None

    @property
    def row_count(self) -> int:
        return sum(len(df) for df in self.tables.values())

    def summary(self) -> dict:
        return {
            "section": self.name,
            "status": self.status,
            "rows": {name: len(df) for name, df in self.tables.items()},
            "note": self.note,
            "discarded": self.discards.total(),
        }


@dataclass
class OperationsReport:
    """The five report sections of one run."""

    sections: dict[str, ReportSection]
    discards: DiscardLog
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            name: df
            for section in self.sections.values()
            for name, df in section.tables.items()
        }

    @property
    def is_complete(self) -> bool:
        return all(s.status in ("ok", "empty") for s in self.sections.values())

    def to_records(self) -> dict[str, list[BaseModel]]:
        """Every table as a list of validated row models."""
        return {name: frame_to_rows(name, df) for name, df in self.tables.items()}

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "complete": self.is_complete,
            "sections": [s.summary() for s in self.sections.values()],
            "discards": self.discards.summary(),
        }


class ReportAssembler:
    """
    Runs every analyzer against one shared, read-only index.

    Usage:
        assembler = ReportAssembler(settings)
        report = assembler.run(snapshot)
        report.tables["inventory_policy"]
    """

    def __init__(
        self,
        settings: AnalyticsSettings | None = None,
        analyzers: dict[str, AnalyzerFn] | None = None,
    ):
        self.settings = settings or get_settings()
        self.analyzers = analyzers or ANALYZERS

    def run(
        self,
        source: Snapshot | OrderFactIndex,
        cancel_event: Optional[threading.Event] = None,
    ) -> OperationsReport:
        """
        Produce the report for a snapshot (or an already built index).

        Args:
            cancel_event: Set it from another thread to stop long-running
                analyzers; their sections come back as "cancelled".
        """
        if isinstance(source, OrderFactIndex):
            index = source
        else:
            index = build_index(source, self.settings)

        with log_duration(log, "report"):
            with ThreadPoolExecutor(
                max_workers=self.settings.max_workers, thread_name_prefix="analyzer"
            ) as pool:
                futures = {
                    name: pool.submit(self._run_section, name, fn, index, cancel_event)
                    for name, fn in self.analyzers.items()
                }
                # Fixed section order keeps the merged output deterministic
                sections = {name: futures[name].result() for name in self.analyzers}

        discards = DiscardLog(stage="report").merge(index.discards)
        for section in sections.values():
            discards.merge(section.discards)

        report = OperationsReport(sections=sections, discards=discards)
        log.info(
            "Report assembled: "
            + ", ".join(f"{s.name}={s.status}" for s in sections.values())
        )
        return report

    def _run_section(
        self,
        name: str,
        fn: AnalyzerFn,
        index: OrderFactIndex,
        cancel_event: Optional[threading.Event],
    ) -> ReportSection:
        section = ReportSection(name=name, discards=DiscardLog(stage=name))
        section_log = get_logger(name)

        try:
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled("Cancelled before start")
            with log_duration(section_log, name):
                section.tables = fn(index, self.settings, section.discards, cancel_event)
        except AnalysisCancelled as e:
            section_log.warning(f"{name} cancelled: {e.message}")
            section.status = "cancelled"
            section.note = e.message
            section.error = e.to_dict()
            section.discards = DiscardLog(stage=name)
        except InsufficientDataError as e:
            section_log.warning(f"{name} produced no output: {e.message}")
            section.status = "empty"
            section.note = e.message
            section.error = e.to_dict()
        except Exception as e:
            # One broken analyzer must not take the other sections down
            section_log.exception(f"{name} failed")
            section.status = "failed"
            section.note = f"{type(e).__name__}: {e}"
            section.error = {"message": str(e), "code": "ANALYZER_FAILED", "details": {}}

        for table in SECTION_TABLES.get(name, []):
            if table not in section.tables:
                section.tables[table] = empty_table(table)

        if section.status == "ok" and section.row_count == 0:
            section.status = "empty"
            section.note = "No rows met the reporting thresholds"

        return section
