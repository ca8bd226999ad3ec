import pandas as pd
import plotly.graph_objects as go
import pytest

from opioid_report import pipeline
from opioid_report.bands import GREATLY_DECREASED, SLIGHTLY_DECREASED
from opioid_report.errors import EmptySource
from opioid_report.plotting import build_figures


@pytest.fixture
def payload(prescribing, overdose, providers, population):
    return pipeline.build_views(
        prescribing=prescribing,
        overdose=overdose,
        providers=providers,
        population=population,
        earlier="2019-01-01",
        later="2023-01-01",
    )


def test_provider_view_keeps_every_state(payload):
    view = payload["provider_density"].set_index("state_code")
    assert view.loc["CA", "providers_per_100k"] == pytest.approx(0.2)
    assert view.loc["WY", "providers_per_100k"] == 0.0


def test_overdose_views_exclude_missing_feeds(payload):
    assert set(payload["overdose_series"]["state_code"]) == {"CA", "NY"}
    assert set(payload["overdose_snapshot"]["state_code"]) == {"CA", "NY"}
    assert (payload["overdose_snapshot"]["date"] == pd.Timestamp("2023-01-01")).all()


def test_overdose_by_band_and_trend(payload):
    by_band = payload["overdose_by_band"]
    assert len(by_band) == 5
    trend = payload["band_trend"]
    greatly = trend[trend["band"] == GREATLY_DECREASED]
    assert greatly["deaths_per_100k"].tolist() == [10.0, 15.0, 16.0]
    assert set(trend["band"].astype(str)) == {GREATLY_DECREASED, SLIGHTLY_DECREASED}


def test_change_views(payload):
    by_band = payload["change_by_band"]
    assert by_band["state_code"].tolist() == ["NY", "CA"]
    assert by_band["percent_change"].tolist() == [200.0, 150.0]

    by_providers = payload["change_by_providers"].set_index("state_code")
    assert by_providers.loc["CA", "providers_per_100k"] == pytest.approx(0.2)
    assert "WY" not in by_providers.index


def test_summary_table_columns_use_observed_years(payload):
    table = payload["summary_table"]
    assert list(table.columns) == [
        "state_code",
        "state_name",
        "band",
        "providers_per_100k",
        "deaths_per_100k_2018",
        "deaths_per_100k_2022",
        "percent_change",
    ]
    ca = table.set_index("state_code").loc["CA"]
    assert ca["deaths_per_100k_2018"] == 10.0
    assert ca["deaths_per_100k_2022"] == 15.0


def test_views_do_not_mutate_inputs(prescribing, overdose, providers, population):
    before = [df.copy() for df in (prescribing, overdose, providers, population)]
    pipeline.build_views(
        prescribing=prescribing, overdose=overdose, providers=providers, population=population
    )
    for original, df in zip(before, (prescribing, overdose, providers, population)):
        pd.testing.assert_frame_equal(original, df)


def test_population_without_names_uses_reference(prescribing, overdose, providers, population):
    payload = pipeline.build_views(
        prescribing=prescribing,
        overdose=overdose,
        providers=providers,
        population=population.drop(columns=["state_name"]),
    )
    names = payload["provider_density"].set_index("state_code")["state_name"]
    assert names["WY"] == "Wyoming"


def test_empty_population_is_rejected(prescribing, overdose, providers, population):
    with pytest.raises(EmptySource):
        pipeline.build_views(
            prescribing=prescribing,
            overdose=overdose,
            providers=providers,
            population=population.iloc[0:0],
        )


def test_run_pipeline_loads_resolved_sources(monkeypatch, prescribing, overdose, providers, population):
    seen = {}

    def fake_load_sources(sources):
        seen.update(sources)
        return {
            "prescribing": prescribing,
            "overdose": overdose,
            "providers": providers,
            "population": population,
        }

    monkeypatch.setattr(pipeline, "load_sources", fake_load_sources)
    payload = pipeline.run_pipeline(sources={"population": "pop.csv"})
    assert seen["population"] == "pop.csv"
    assert set(seen) == {"prescribing", "overdose", "providers", "population"}
    assert payload["cause"] == "Opioids"


def test_build_figures(payload):
    figures = build_figures(payload)
    assert set(figures) == {
        "providers",
        "map",
        "heatmap",
        "band_trend",
        "change_by_band",
        "change_by_providers",
        "summary_table",
    }
    assert all(isinstance(fig, go.Figure) for fig in figures.values())
    assert len(figures["band_trend"].data) == 2
    assert figures["summary_table"].data[0].type == "table"


def test_annual_summary_view(payload):
    annual = payload["annual_summary"]
    assert sorted(annual["observed_year"].unique().tolist()) == [2018, 2022]
    assert (annual["date"].dt.month == 1).all()
