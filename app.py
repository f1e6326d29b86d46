"""
Supply Chain Operations Dashboard

A Streamlit dashboard for browsing the operations report.
Run with: streamlit run app.py
"""

import os
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from datasources import OlistCsvLoader
from supplyops import AnalyticsSettings, ReportAssembler, setup_logging

# Page config
st.set_page_config(
    page_title="Supply Chain Operations",
    page_icon="🚚",
    layout="wide",
)

st.title("🚚 Supply Chain Operations Report")
st.caption("Inventory, seasonality, demand clusters, seller risk and split-shipment cost")

DATA_DIR = Path(os.getenv("SUPPLYOPS_DATA_DIR", "data/olist"))

STATUS_ICON = {"ok": "✅", "empty": "⚪", "failed": "🔴", "cancelled": "🟠"}


@st.cache_resource
def load_report():
    """Load the snapshot and run every analyzer (cached for performance)."""
    settings = AnalyticsSettings()
    setup_logging(settings.log_level)
    snapshot = OlistCsvLoader(DATA_DIR).load_all()
    return ReportAssembler(settings).run(snapshot)


with st.spinner("Running analytics..."):
    report = load_report()

tables = report.tables

# --- Key Metrics Row ---
st.header("Key Metrics")
col1, col2, col3, col4 = st.columns(4)

with col1:
    st.metric("Products with reorder policy", f"{len(tables['inventory_policy']):,}")

with col2:
    risk = tables["seller_risk"]
    high = int((risk["risk_flag"] == "HIGH RISK").sum()) if len(risk) else 0
    st.metric(
        "Sellers with delays",
        f"{len(risk):,}",
        delta=f"{high} high risk",
        delta_color="inverse",
    )

with col3:
    pairs = tables["seller_pair_margin"]
    lost = float(pairs["total_lost_margin"].sum()) if len(pairs) else 0.0
    st.metric("Lost shipping margin (reported pairs)", f"R${lost:,.0f}")

with col4:
    st.metric(
        "Rows discarded",
        f"{report.discards.total():,}",
        delta="see diagnostics",
        delta_color="off",
    )

section_states = " | ".join(
    f"{STATUS_ICON[s.status]} {s.name}" for s in report.sections.values()
)
st.caption(section_states)

st.divider()

inventory_tab, trends_tab, geo_tab, risk_tab, margin_tab, diag_tab = st.tabs(
    ["📦 Inventory", "📈 Trends", "🗺️ Clusters", "⚠️ Seller Risk", "🔀 Co-purchase", "🔧 Diagnostics"]
)

with inventory_tab:
    st.subheader("Reorder Parameters")
    policy = tables["inventory_policy"]
    if len(policy) > 0:
        st.dataframe(
            policy.head(50),
            use_container_width=True,
            hide_index=True,
            column_config={
                "annual_demand": st.column_config.NumberColumn(format="%.2f"),
                "eoq": st.column_config.NumberColumn("EOQ", format="%d"),
                "safety_stock": st.column_config.NumberColumn(format="%d"),
                "reorder_point": st.column_config.NumberColumn(format="%d"),
            },
        )
        st.caption(f"Showing top 50 of {len(policy):,} products by reorder point")
    else:
        st.info(report.sections["inventory"].note or "No product has enough delivered history")

with trends_tab:
    categories = tables["category_trends"]
    if len(categories) > 0:
        chosen = st.selectbox(
            "Category", sorted(categories["product_category_name"].unique())
        )
        rows = categories[categories["product_category_name"] == chosen].sort_values("year")
        month_cols = [c for c in categories.columns if c.endswith("_pct") and c != "yoy_growth_pct"]

        fig_season = go.Figure()
        for _, row in rows.iterrows():
            fig_season.add_trace(
                go.Scatter(
                    x=[c[:3].title() for c in month_cols],
                    y=[row[c] for c in month_cols],
                    mode="lines+markers",
                    name=str(row["year"]),
                )
            )
        fig_season.update_layout(
            title=f"Monthly share of units: {chosen}",
            height=350,
            margin=dict(t=40, b=20, l=20, r=20),
            yaxis_title="% of year",
        )
        st.plotly_chart(fig_season, use_container_width=True)
        st.dataframe(rows, use_container_width=True, hide_index=True)
    else:
        st.info(report.sections["trends"].note or "No categorised sales")

    with st.expander("Product-year trends"):
        st.dataframe(tables["product_trends"].head(200), use_container_width=True, hide_index=True)

with geo_tab:
    left_col, right_col = st.columns(2)
    by_volume = tables["clusters_by_volume"]
    by_cost = tables["clusters_by_cost"]

    with left_col:
        st.subheader("Candidate fulfillment sites (volume)")
        st.dataframe(by_volume, use_container_width=True, hide_index=True)

    with right_col:
        st.subheader("Candidate cost-saving sites (freight)")
        st.dataframe(by_cost, use_container_width=True, hide_index=True)

    if len(by_volume) > 0:
        fig_map = go.Figure(
            data=[
                go.Scattergeo(
                    lat=by_volume["cluster_lat"],
                    lon=by_volume["cluster_lng"],
                    text=[f"{n:,} items" for n in by_volume["total_orders"]],
                    marker=dict(
                        size=by_volume["total_orders"] / by_volume["total_orders"].max() * 30 + 5,
                        color="#3498db",
                    ),
                )
            ]
        )
        fig_map.update_geos(fitbounds="locations")
        fig_map.update_layout(height=400, margin=dict(t=20, b=20, l=20, r=20))
        st.plotly_chart(fig_map, use_container_width=True)
    else:
        st.info(report.sections["geo"].note or "No customer could be located")

with risk_tab:
    risk = tables["seller_risk"]
    if len(risk) > 0:
        risk_filter = st.multiselect(
            "Filter by flag:", ["HIGH RISK", "LOW RISK"], default=["HIGH RISK"]
        )
        filtered = risk[risk["risk_flag"].isin(risk_filter)]
        st.dataframe(
            filtered,
            use_container_width=True,
            hide_index=True,
            column_config={
                "churn_probability": st.column_config.ProgressColumn(
                    "Churn probability", min_value=0.0, max_value=1.0, format="%.2f"
                ),
            },
        )
    else:
        st.info(report.sections["seller_risk"].note or "No delayed shipments")

with margin_tab:
    left_col, right_col = st.columns([1, 1])

    with left_col:
        st.subheader("Seller pairs")
        st.dataframe(tables["seller_pair_margin"].head(30), use_container_width=True, hide_index=True)

    with right_col:
        st.subheader("Category pairs")
        cat_pairs = tables["category_pair_margin"].head(10)
        if len(cat_pairs) > 0:
            fig_pairs = go.Figure(
                data=[
                    go.Bar(
                        x=cat_pairs["co_purchase_count"],
                        y=cat_pairs["category_a"] + " + " + cat_pairs["category_b"],
                        orientation="h",
                        marker_color="#e74c3c",
                    )
                ]
            )
            fig_pairs.update_layout(
                title="Most frequent cross-category splits",
                height=350,
                margin=dict(t=40, b=20, l=20, r=20),
                yaxis=dict(autorange="reversed"),
            )
            st.plotly_chart(fig_pairs, use_container_width=True)
        st.dataframe(tables["category_pair_margin"], use_container_width=True, hide_index=True)

with diag_tab:
    st.subheader("Sections")
    st.dataframe(
        pd.DataFrame([s.summary() for s in report.sections.values()]).drop(columns=["rows"]),
        use_container_width=True,
        hide_index=True,
    )

    st.subheader("Rows left out")
    details = report.discards.summary()["details"]
    if details:
        st.dataframe(pd.DataFrame(details), use_container_width=True, hide_index=True)
    else:
        st.markdown("✅ Nothing discarded")

# --- Footer ---
st.divider()
st.caption(
    "Built with Streamlit | "
    f"Generated {report.generated_at:%Y-%m-%d %H:%M} UTC | "
    f"Data: {DATA_DIR}"
)
