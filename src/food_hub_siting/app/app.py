# app.py
# streamlit run src/food_hub_siting/app/app.py
from dataclasses import replace
from pathlib import Path

import streamlit as st
import pandas as pd

# Maps & viz
import folium
from streamlit_folium import st_folium
import plotly.express as px

from food_hub_siting.config import (
    KMEANS_K_DEFAULT, PRECEDENCE_CHOICES, load_settings, validate_settings,
)
from food_hub_siting.errors import FoodHubError
from food_hub_siting.pipeline import run_pipeline
from food_hub_siting.schema import (
    CLUSTER_COL, FOOD_INSECURITY_COL, LAT_COL, LON_COL, STATE_ABBR_COL, STATE_COL,
)


st.set_page_config(page_title="Food Hub Siting", layout="wide")
st.title("Food Hub Siting")
st.caption("Tract health survey x county food environment: state food insecurity, proposed donation hubs, engagement.")

PALETTE = [
    "#2A9D8F", "#E76F51", "#264653", "#F4A261", "#8AB17D",
    "#577590", "#FF9F1C", "#3D5A80", "#43AA8B", "#B56576"
]


# ==============================
# Sidebar
# ==============================
base = load_settings()
with st.sidebar:
    st.header("Inputs")
    places_path = st.text_input("Tract CSV (PLACES)", str(base.places_path))
    atlas_path = st.text_input("County CSV (Food Environment Atlas, long)", str(base.atlas_path))

    st.header("Siting")
    state = st.text_input("State", base.state)
    k = st.slider("Proposed hubs (k)", 1, 15, base.k if base.k <= 15 else KMEANS_K_DEFAULT)
    seed = st.number_input("Seed", value=base.seed, step=1)
    access_q = st.slider("High-access percentile", 0.0, 1.0, base.access_quantile, 0.05)
    precedence = st.radio("Donor-access rule", PRECEDENCE_CHOICES,
                          index=PRECEDENCE_CHOICES.index(base.precedence),
                          help="nested: grocery OR (convenience AND market); flat: (grocery OR convenience) AND market")

    st.header("Engagement")
    rate = st.slider("Engagement rate", 0.0, 1.0, base.engagement_rate, 0.01)


@st.cache_data(show_spinner=False)
def cached_run(places_path: str, atlas_path: str, state: str, k: int, seed: int,
               access_q: float, precedence: str, rate: float):
    settings = validate_settings(replace(
        base, places_path=Path(places_path), atlas_path=Path(atlas_path), state=state,
        k=int(k), seed=int(seed), access_quantile=float(access_q), precedence=precedence,
        engagement_rate=float(rate),
    ))
    return run_pipeline(settings)


try:
    with st.spinner("Running pipeline…"):
        result = cached_run(places_path, atlas_path, state, k, seed, access_q, precedence, rate)
except (FileNotFoundError, FoodHubError) as exc:
    st.error(str(exc))
    st.stop()

if result.cluster_error:
    st.warning(f"No hubs proposed: {result.cluster_error}")

c1, c2, c3 = st.columns(3)
c1.metric("Tracts", f"{len(result.merged):,}")
c2.metric("Siting candidates", f"{len(result.candidates):,}")
c3.metric("Proposed hubs", f"{len(result.centroids):,}")

tab_map, tab_hubs, tab_engage, tab_quality = st.tabs(
    ["State food insecurity", "Proposed hubs", "Engagement", "Data quality"]
)

# ==============================
# Choropleth
# ==============================
with tab_map:
    abbr = result.merged[[STATE_COL, STATE_ABBR_COL]].dropna().drop_duplicates(subset=STATE_COL)
    avg = result.state_averages.merge(abbr, on=STATE_COL, how="left")
    value_col = f"mean_{FOOD_INSECURITY_COL}"
    fig = px.choropleth(
        avg, locations=STATE_ABBR_COL, locationmode="USA-states", color=value_col,
        scope="usa", color_continuous_scale="Reds", hover_name=STATE_COL,
        hover_data={"rank": True, "n_counties": True, STATE_ABBR_COL: False},
        labels={value_col: "Food insecurity (%)"},
    )
    fig.update_layout(height=520, margin=dict(l=0, r=0, t=10, b=0))
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(result.state_averages, use_container_width=True)

# ==============================
# Hub map
# ==============================
with tab_hubs:
    cand = result.candidates.dropna(subset=[LAT_COL, LON_COL])
    if cand.empty:
        st.info("No donor-access tracts with coordinates in this state.")
    else:
        m = folium.Map(location=[cand[LAT_COL].mean(), cand[LON_COL].mean()],
                       zoom_start=7, tiles="CartoDB Positron")
        for _, r in cand.iterrows():
            label = r.get(CLUSTER_COL)
            col = PALETTE[int(label) % len(PALETTE)] if pd.notna(label) else "#999999"
            folium.CircleMarker(
                location=[r[LAT_COL], r[LON_COL]], radius=4, color=col,
                fill=True, fill_color=col, fill_opacity=0.7,
                tooltip=f"Tract {r.get('TractFIPS', '')} · hub {label}",
            ).add_to(m)
        for _, h in result.centroids.iterrows():
            folium.Marker(
                location=[h[LAT_COL], h[LON_COL]],
                tooltip=f"Hub {int(h[CLUSTER_COL])}: {int(h['n_points'])} tracts, "
                        f"{h['mean_km_to_hub']:.1f} km avg",
                icon=folium.Icon(color="red", icon="star"),
            ).add_to(m)
        st_folium(m, use_container_width=True, height=520)
    st.dataframe(result.centroids, use_container_width=True)
    st.dataframe(result.thresholds, use_container_width=True)

# ==============================
# Engagement
# ==============================
with tab_engage:
    eng = result.engagement.dropna(subset=["estimated_engaged"])
    fig = px.bar(eng, x=STATE_COL, y="estimated_engaged",
                 labels={"estimated_engaged": "Estimated engaged residents", STATE_COL: "State"},
                 title=f"Engagement estimate (rate {rate:.0%})")
    fig.update_layout(height=450)
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(result.engagement, use_container_width=True)

# ==============================
# Data quality
# ==============================
with tab_quality:
    st.dataframe(result.quality.to_frame(), use_container_width=True)
