import pandas as pd
from shiny import reactive, render
from shiny.express import input, ui
from shinywidgets import render_plotly

# Import organized modules
from opioid_report.bands import BAND_LABELS
from opioid_report.config import DEFAULT_VIEW, VIEW_OPTIONS
from opioid_report.data_manager import load_payload
from opioid_report.plotting import (
    create_band_trend_plot,
    create_change_by_band_plot,
    create_change_vs_providers_plot,
    create_overdose_heatmap,
    create_overdose_map,
    create_provider_plot,
)

# Helpers for UI mapping
VIEW_CHOICES = {value: label for label, value in VIEW_OPTIONS}
BAND_CHOICES = {band: band for band in BAND_LABELS}

# ======================================================
#  REACTIVE STATE
# ======================================================
# Load once on startup; values stay in-memory until app restart.
payload_store = reactive.Value(load_payload())


@reactive.calc
def selected_states():
    """State codes whose prescribing band is ticked in the sidebar."""
    bands = payload_store.get()["bands"]
    chosen = input.bands() or ()
    return set(bands.loc[bands["band"].isin(chosen), "state_code"])


def _restrict(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty or "state_code" not in df.columns:
        return df
    return df[df["state_code"].isin(selected_states())]


@reactive.calc
def current_figure():
    payload = payload_store.get()
    view = input.view()
    cause = payload["cause"]
    earlier, later = payload["earlier_date"], payload["later_date"]

    if view == "providers":
        return create_provider_plot(_restrict(payload["provider_density"]))
    if view == "map":
        return create_overdose_map(_restrict(payload["overdose_snapshot"]), cause=cause)
    if view == "heatmap":
        return create_overdose_heatmap(_restrict(payload["overdose_series"]), cause=cause)
    if view == "band_trend":
        trend = payload["band_trend"]
        return create_band_trend_plot(trend[trend["band"].isin(input.bands() or ())])
    if view == "change_by_band":
        return create_change_by_band_plot(
            _restrict(payload["change_by_band"]), earlier=earlier, later=later
        )
    return create_change_vs_providers_plot(
        _restrict(payload["change_by_providers"]), earlier=earlier, later=later
    )


# ======================================================
#  UI LAYOUT
# ======================================================
ui.page_opts(
    title="Opioid Prescribing, Treatment Access and Overdose Deaths",
    fillable=False,
    full_width=True,
    lang="en",
)

with ui.sidebar(open="always", position="right"):
    ui.input_select("view", "Chart", VIEW_CHOICES, selected=DEFAULT_VIEW)
    ui.input_checkbox_group(
        "bands",
        "Five-year prescribing change",
        BAND_CHOICES,
        selected=BAND_LABELS,
    )
    ui.input_action_button("reset_filters", "Reset filters", class_="btn-primary mt-3")


@reactive.effect
@reactive.event(input.reset_filters)
def _reset_filters():
    ui.update_select("view", selected=DEFAULT_VIEW)
    ui.update_checkbox_group("bands", selected=BAND_LABELS)


with ui.navset_tab(id="main_tabs"):
    with ui.nav_panel("Charts"):
        with ui.div(style="display:flex; justify-content:center;"):

            @render_plotly
            def report_plot():
                return current_figure()

    with ui.nav_panel("Summary table"):

        @render.data_frame
        def summary_table():
            table = _restrict(payload_store.get()["summary_table"]).copy()
            table["band"] = table["band"].astype(str)
            return render.DataGrid(table.round(1), height=800, filters=True)
