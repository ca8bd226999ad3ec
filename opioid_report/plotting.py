from typing import Dict

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .bands import BAND_LABELS
from .config import BAND_COLORS
from .temporal import observed_year


# ============================================================
# Configuration / constants
# ============================================================

HOVER_TEMPLATE_PROVIDERS = (
    "State: %{x}<br>"
    "Providers: %{customdata[0]:,}<br>"
    "Population: %{customdata[1]:,}<br>"
    "Providers per 100k: %{y:.2f}<extra></extra>"
)

HOVER_TEMPLATE_TREND = (
    "Prescribing change: %{customdata[0]}<br>"
    "12 months ending: %{x|%b %Y}<br>"
    "States: %{customdata[1]}<br>"
    "Deaths per 100k: %{y:.1f}<extra></extra>"
)

LAYOUT_DEFAULTS = dict(
    width=1000,
    margin=dict(t=100, l=50, r=80, b=40),
    plot_bgcolor="#f5f7fb",
)

LEGEND_DEFAULTS = dict(
    orientation="h",
    x=0.5,
    y=1.02,
    xanchor="center",
    yanchor="bottom",
    bordercolor="#c7c7c7",
    borderwidth=2,
    bgcolor="#f9f9f9",
    font=dict(size=12),
)


# ============================================================
# Helper functions
# ============================================================


def _build_palette(band_colors: dict[str, str] | None) -> dict[str, str]:
    """
    Merge user-supplied colors with defaults (user overrides default).
    """
    return {**BAND_COLORS, **(band_colors or {})}


def _reading_label(date: pd.Timestamp) -> str:
    """Axis/title label for a January reading, e.g. ``2022 (Jan 2023 reading)``."""
    ts = pd.Timestamp(date)
    return f"{observed_year(ts)} ({ts:%b %Y} reading)"


# ============================================================
# Figures
# ============================================================


def create_provider_plot(df: pd.DataFrame) -> go.Figure:
    """
    Bar chart of opioid treatment providers per 100k residents by state.

    States with no providers are kept and drawn as zero-height bars.
    """
    if df.empty:
        return go.Figure()

    df_plot = df.sort_values("providers_per_100k", ascending=False)
    fig = go.Figure(
        go.Bar(
            x=df_plot["state_code"],
            y=df_plot["providers_per_100k"],
            marker=dict(color="#1f77b4"),
            customdata=list(zip(df_plot["providers"], df_plot["population"])),
            hovertemplate=HOVER_TEMPLATE_PROVIDERS,
        )
    )
    fig.update_xaxes(title_text="State", tickangle=-90)
    fig.update_yaxes(title_text="Providers per 100k", rangemode="tozero")
    fig.update_layout(
        title="<b>Opioid Treatment Program Providers per 100,000 Residents</b>",
        height=600,
        **LAYOUT_DEFAULTS,
    )
    return fig


def create_overdose_heatmap(df: pd.DataFrame, cause: str = "Opioids") -> go.Figure:
    """
    Tile chart: states by month, colored by trailing 12-month deaths per 100k.
    """
    if df.empty:
        return go.Figure()

    grid = df.pivot_table(
        index="state_code", columns="date", values="deaths_per_100k", aggfunc="first"
    ).sort_index(ascending=False)

    fig = go.Figure(
        go.Heatmap(
            z=grid.values,
            x=grid.columns,
            y=grid.index,
            colorscale="YlOrRd",
            colorbar=dict(title="Deaths per 100k"),
            hovertemplate=(
                "State: %{y}<br>12 months ending: %{x|%b %Y}<br>"
                "Deaths per 100k: %{z:.1f}<extra></extra>"
            ),
        )
    )
    fig.update_xaxes(title_text="12 months ending")
    fig.update_yaxes(title_text="State", dtick=1)
    fig.update_layout(
        title=f"<b>{cause} Overdose Deaths per 100,000 Residents (trailing 12 months)</b>",
        height=max(600, 18 * len(grid.index)),
        **LAYOUT_DEFAULTS,
    )
    return fig


def create_overdose_map(df: pd.DataFrame, cause: str = "Opioids") -> go.Figure:
    """
    Choropleth of deaths per 100k at a single January reading.
    """
    if df.empty:
        return go.Figure()

    date = df["date"].iloc[0]
    fig = px.choropleth(
        df,
        locations="state_code",
        locationmode="USA-states",
        color="deaths_per_100k",
        color_continuous_scale="YlOrRd",
        scope="usa",
        hover_data={"state_code": True, "deaths": ":,.0f", "deaths_per_100k": ":.1f"},
        labels={"deaths_per_100k": "Deaths per 100k", "deaths": "Deaths"},
        title=f"<b>{cause} Overdose Deaths per 100,000 Residents, {_reading_label(date)}</b>",
    )
    fig.update_layout(height=600, width=1000, margin=dict(t=100, l=20, r=20, b=20))
    return fig


def create_band_trend_plot(
    df: pd.DataFrame,
    *,
    band_colors: dict[str, str] | None = None,
) -> go.Figure:
    """
    Overdose deaths per 100k over time, one line per prescribing-change band.

    Parameters
    ----------
    df : pd.DataFrame
        Pooled rates with columns 'band', 'date', 'states' and
        'deaths_per_100k'.
    band_colors : dict[str, str] | None, default None
        Optional mapping of band label -> hex color. Overrides defaults.

    Returns
    -------
    go.Figure
        A Plotly Figure with one trace per band.
    """
    if df.empty:
        return go.Figure()

    palette = _build_palette(band_colors)
    fig = go.Figure()
    for band in BAND_LABELS:
        sub = df[df["band"] == band]
        if sub.empty:
            continue
        color = palette.get(band)
        fig.add_trace(
            go.Scatter(
                x=sub["date"],
                y=sub["deaths_per_100k"],
                mode="lines+markers",
                line=dict(width=3, color=color),
                marker=dict(size=6, color=color),
                name=band,
                hovertemplate=HOVER_TEMPLATE_TREND,
                customdata=list(zip([band] * len(sub), sub["states"])),
            )
        )

    fig.update_xaxes(title_text="12 months ending")
    fig.update_yaxes(title_text="Deaths per 100k", rangemode="tozero")
    fig.update_layout(
        title="<b>Opioid Overdose Deaths by Five-Year Change in Prescribing Rate</b>",
        height=600,
        legend=dict(title="Prescribing change", **LEGEND_DEFAULTS),
        **LAYOUT_DEFAULTS,
    )
    return fig


def create_change_by_band_plot(
    df: pd.DataFrame,
    *,
    earlier: pd.Timestamp,
    later: pd.Timestamp,
    band_colors: dict[str, str] | None = None,
) -> go.Figure:
    """
    Bar chart of the percent change in overdose density by state, colored by band.
    """
    if df.empty:
        return go.Figure()

    palette = _build_palette(band_colors)
    fig = px.bar(
        df,
        x="state_code",
        y="percent_change",
        color="band",
        color_discrete_map=palette,
        category_orders={"band": BAND_LABELS},
        hover_data={"state_name": True, "rate_5yr_change": ":.2f"},
        labels={
            "state_code": "State",
            "percent_change": "Percent of earlier rate",
            "band": "Prescribing change",
            "rate_5yr_change": "5-year prescribing change",
        },
    )
    fig.add_hline(y=100, line_dash="dash", line_color="black", opacity=0.8)
    fig.update_xaxes(categoryorder="total descending", tickangle=-90)
    fig.update_layout(
        title=(
            f"<b>Overdose Deaths per 100k, {observed_year(later)} as % of "
            f"{observed_year(earlier)}</b>"
        ),
        height=600,
        legend=dict(title="Prescribing change", **LEGEND_DEFAULTS),
        **LAYOUT_DEFAULTS,
    )
    return fig


def create_change_vs_providers_plot(
    df: pd.DataFrame, *, earlier: pd.Timestamp, later: pd.Timestamp
) -> go.Figure:
    """
    Scatter of provider density against the percent change in overdose density.
    """
    if df.empty:
        return go.Figure()

    fig = px.scatter(
        df,
        x="providers_per_100k",
        y="percent_change",
        text="state_code",
        hover_data={"state_name": True, "providers": True},
        labels={
            "providers_per_100k": "Treatment providers per 100k",
            "percent_change": "Percent of earlier rate",
        },
    )
    fig.update_traces(textposition="top center", marker=dict(size=9, color="#9467bd"))
    fig.add_hline(y=100, line_dash="dash", line_color="black", opacity=0.8)
    fig.update_layout(
        title=(
            f"<b>Change in Overdose Deaths ({observed_year(earlier)}–"
            f"{observed_year(later)}) vs Treatment Provider Density</b>"
        ),
        height=600,
        **LAYOUT_DEFAULTS,
    )
    return fig


def create_summary_table(df: pd.DataFrame) -> go.Figure:
    """
    Render the per-state summary table.
    """
    if df.empty:
        return go.Figure()

    headers = [col.replace("_", " ").title() for col in df.columns]
    cells = []
    for col in df.columns:
        values = df[col]
        if pd.api.types.is_float_dtype(values):
            values = values.round(1)
        cells.append(values.astype(str).tolist())

    fig = go.Figure(
        go.Table(
            header=dict(values=headers, fill_color="#c7c7c7", align="left"),
            cells=dict(values=cells, fill_color="#f9f9f9", align="left"),
        )
    )
    fig.update_layout(
        title="<b>Overdose Change, Prescribing Change and Treatment Access by State</b>",
        height=max(400, 28 * (len(df) + 2)),
        width=1000,
    )
    return fig


def build_figures(payload: Dict[str, object]) -> Dict[str, go.Figure]:
    """Create every report figure from a pipeline payload."""
    cause = payload["cause"]
    earlier, later = payload["earlier_date"], payload["later_date"]
    return {
        "providers": create_provider_plot(payload["provider_density"]),
        "map": create_overdose_map(payload["overdose_snapshot"], cause=cause),
        "heatmap": create_overdose_heatmap(payload["overdose_series"], cause=cause),
        "band_trend": create_band_trend_plot(payload["band_trend"]),
        "change_by_band": create_change_by_band_plot(
            payload["change_by_band"], earlier=earlier, later=later
        ),
        "change_by_providers": create_change_vs_providers_plot(
            payload["change_by_providers"], earlier=earlier, later=later
        ),
        "summary_table": create_summary_table(payload["summary_table"]),
    }
