"""Streamlit dashboard for the Stage Allocation Engine."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

from stageplan.utils.config import get_settings

# ==========================================
# Configuration & Constants
# ==========================================
# Set STAGEPLAN_API_BASE_URL to point at another FastAPI server
API_BASE_URL = get_settings().api_base_url.rstrip("/")

POLICIES = ["Popularity", "DenseMainStage", "Random"]

# red = not playing, orange = turnover, green = playing
STATE_COLOURS = {0: "#ff0000", 1: "#ffa500", 2: "#00ff00"}

DEFAULT_SHOWS = pd.DataFrame(
    {
        "start": [1, 2, 5, 1, 3],
        "end": [3, 4, 6, 2, 6],
        "priority": [9, 4, 7, 2, 5],
    }
)

st.set_page_config(
    page_title="Festival Stage Planner",
    page_icon="🎪",
    layout="wide",
)

# ==========================================
# API Helper Functions
# ==========================================
def _shows_payload(shows: pd.DataFrame) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for row in shows.dropna(subset=["start", "end"]).itertuples(index=False):
        item: Dict[str, Any] = {"start": int(row.start), "end": int(row.end)}
        if not pd.isna(row.priority):
            item["priority"] = int(row.priority)
        payload.append(item)
    return payload


def fetch_allocation(
    shows: pd.DataFrame,
    policy: str,
    turnover_slots: int,
    random_seed: Optional[int],
) -> Optional[Dict[str, Any]]:
    """Calls the backend allocation engine."""
    try:
        response = requests.post(
            f"{API_BASE_URL}/allocate",
            json={
                "shows": _shows_payload(shows),
                "policy": policy,
                "turnover_slots": turnover_slots,
                "random_seed": random_seed,
            },
            timeout=10,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Allocation failed: {e}")
        return None


def fetch_simulation(
    shows: pd.DataFrame,
    policy: str,
    turnover_slots: int,
) -> Optional[Dict[str, Any]]:
    """Calls the backend What-If comparison."""
    try:
        response = requests.post(
            f"{API_BASE_URL}/simulate",
            json={
                "shows": _shows_payload(shows),
                "policy": policy,
                "turnover_slots": turnover_slots,
            },
            timeout=10,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Simulation failed: {e}")
        return None


# ==========================================
# Rendering helpers
# ==========================================
def _timetable_frame(result: Dict[str, Any]) -> pd.DataFrame:
    rows = result.get("timetable", [])
    frame = pd.DataFrame(rows)
    frame.index = [f"Stage {index}" for index in range(1, len(rows) + 1)]
    frame.columns = [str(column) for column in range(1, frame.shape[1] + 1)]
    return frame


def _label_frame(result: Dict[str, Any], timetable: pd.DataFrame) -> pd.DataFrame:
    labels = pd.DataFrame("", index=timetable.index, columns=timetable.columns)
    for item in result.get("assignments", []):
        label = f"A:{item['show_id']}, P:{item.get('priority', '-')}"
        for slot in range(item["start"], item["end"] + 1):
            labels.loc[f"Stage {item['stage']}", str(slot)] = label
    return labels


def render_timetable(result: Dict[str, Any]) -> None:
    timetable = _timetable_frame(result)
    if timetable.empty:
        st.info("No shows to display.")
        return
    labels = _label_frame(result, timetable)
    styled = labels.style.apply(
        lambda column: [
            f"background-color: {STATE_COLOURS[int(value)]}"
            for value in timetable[column.name]
        ],
        axis=0,
    )
    st.dataframe(styled, use_container_width=True)


# ==========================================
# UI Page Functions
# ==========================================
def render_allocation_page() -> None:
    st.header("🎪 Stage Allocation")
    st.markdown("Assign every show to a stage while keeping turnover windows free.")

    shows = st.data_editor(DEFAULT_SHOWS, num_rows="dynamic", use_container_width=True)

    col1, col2, col3 = st.columns(3)
    with col1:
        policy = st.selectbox("Planning policy", POLICIES)
    with col2:
        turnover_slots = st.number_input("Turnover timeslots", min_value=0, max_value=24, value=1)
    with col3:
        seed_text = st.text_input("Random seed (optional)", "")

    if st.button("Allocate Stages", type="primary"):
        random_seed = int(seed_text) if seed_text.strip().isdigit() else None
        with st.spinner("Booking stages..."):
            result = fetch_allocation(shows, policy, int(turnover_slots), random_seed)

            if result:
                metric_col1, metric_col2, metric_col3 = st.columns(3)
                metric_col1.metric("Stages", result.get("stage_count", 0))
                metric_col2.metric("Lower bound", result.get("minimum_stages", 0))
                metric_col3.metric("Passes", result.get("passes", 0))

                st.write("### Festival timetable")
                render_timetable(result)

                st.write("### Assignments")
                st.dataframe(pd.DataFrame(result.get("assignments", [])), use_container_width=True)
                st.download_button(
                    "Download report",
                    "\n".join(result.get("report", [])) + "\n",
                    file_name="ShowList_withStages.txt",
                )


def render_simulation_page() -> None:
    st.header("🧪 What-If Sandbox")
    st.markdown("Compare the configured planning policy against an alternative.")

    shows = st.data_editor(DEFAULT_SHOWS, num_rows="dynamic", use_container_width=True)
    col1, col2 = st.columns(2)
    with col1:
        policy = st.selectbox("Alternative policy", POLICIES, index=1)
    with col2:
        turnover_slots = st.number_input("Alternative turnover", min_value=0, max_value=24, value=1)

    if st.button("Run Simulation", type="primary"):
        with st.spinner("Running alternate timeline..."):
            result = fetch_simulation(shows, policy, int(turnover_slots))

            if result:
                baseline = result.get("baseline", {})
                simulation = result.get("simulation", {})
                delta = result.get("delta", {})

                col_a, col_b, col_c = st.columns(3)
                col_a.metric("Baseline stages", baseline.get("stage_count", 0))
                col_b.metric(
                    "Simulated stages",
                    simulation.get("stage_count", 0),
                    delta=delta.get("stage_count_change", 0),
                    delta_color="inverse",
                )
                col_c.metric(
                    "Main stage shows",
                    simulation.get("main_stage_shows", 0),
                    delta=delta.get("main_stage_shows_change", 0),
                )
                st.dataframe(
                    pd.DataFrame({"baseline": baseline, "simulation": simulation}),
                    use_container_width=True,
                )


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Festival Stage Planner")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigation Module",
        ["Stage Allocation", "What-If Simulation"]
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"Backend: {API_BASE_URL}")

    if page == "Stage Allocation":
        render_allocation_page()
    elif page == "What-If Simulation":
        render_simulation_page()

if __name__ == "__main__":
    main()
