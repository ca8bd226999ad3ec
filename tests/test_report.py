import pandas as pd
import plotly.graph_objects as go
import pytest

from opioid_report import config, data_manager, report
from opioid_report.errors import SourceUnavailable


def test_write_figures(tmp_path):
    written = report.write_figures({"empty": go.Figure()}, tmp_path / "out")
    assert written["empty"] == tmp_path / "out" / "empty.html"
    text = written["empty"].read_text(encoding="utf-8")
    assert "<html" in text
    assert "cdn.plot.ly" in text


def test_main_writes_report(tmp_path, monkeypatch, prescribing, overdose, providers, population):
    from opioid_report.pipeline import build_views

    payload = build_views(
        prescribing=prescribing, overdose=overdose, providers=providers, population=population
    )
    monkeypatch.setattr(report, "load_payload", lambda: payload)
    monkeypatch.setenv(config.REPORT_DIR_ENV, str(tmp_path))

    assert report.main() == 0
    assert (tmp_path / "summary_table.csv").exists()
    assert (tmp_path / "map.html").exists()
    annual = pd.read_csv(tmp_path / "annual_summary.csv")
    assert sorted(annual["observed_year"].unique().tolist()) == [2018, 2022]


def test_main_reports_unreadable_source(tmp_path, monkeypatch):
    def fail():
        raise SourceUnavailable("overdose.csv", "file not found")

    monkeypatch.setattr(report, "load_payload", fail)
    assert report.main(out_dir=tmp_path) == 1
    assert not any(tmp_path.iterdir())


def test_resolve_sources_precedence(monkeypatch):
    monkeypatch.setenv("OPIOID_OVERDOSE_SOURCE", "/data/overdose.csv")
    monkeypatch.setenv("OPIOID_PROVIDER_SOURCE", "/data/providers.csv")
    sources = config.resolve_sources({"providers": "local.csv"})
    assert sources["overdose"] == "/data/overdose.csv"
    assert sources["providers"] == "local.csv"
    assert sources["population"] == config.POPULATION_SOURCE


def test_load_payload_is_computed_once(monkeypatch):
    calls = []

    def fake_run_pipeline():
        calls.append(1)
        return {"cause": "Opioids"}

    monkeypatch.setattr(data_manager.pipeline, "run_pipeline", fake_run_pipeline)
    data_manager._compute_pipeline_payload.cache_clear()
    try:
        assert data_manager.load_payload() == {"cause": "Opioids"}
        data_manager.load_payload()
        assert len(calls) == 1
        data_manager.load_payload(force_recompute=True)
        assert len(calls) == 2
    finally:
        data_manager._compute_pipeline_payload.cache_clear()


@pytest.mark.parametrize("env_value", ["~/reports", "/tmp/opioid"])
def test_resolve_report_dir_from_env(monkeypatch, env_value):
    monkeypatch.setenv(config.REPORT_DIR_ENV, env_value)
    assert config.resolve_report_dir().is_absolute()


def test_main_fails_cleanly_when_no_population_resolves(tmp_path, monkeypatch):
    files = {
        "OPIOID_PRESCRIBING_SOURCE": (
            "prescribing.csv",
            "Prscrbr_Geo_Desc,Plan_Type,Year,Opioid_Prscrbng_Rate_5Y_Chg\n"
            "California,All,2021,-3.5\n",
        ),
        "OPIOID_OVERDOSE_SOURCE": (
            "overdose.csv",
            "State,Year,Month,Indicator,Data Value\nCA,2023,January,Opioids,100\n",
        ),
        "OPIOID_PROVIDER_SOURCE": ("providers.csv", "STATE\nCA\n"),
        "OPIOID_POPULATION_SOURCE": (
            "population.csv",
            "NAME,POPESTIMATE2020\nUnited States,1000\n",
        ),
    }
    for env_var, (name, text) in files.items():
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        monkeypatch.setenv(env_var, str(path))

    out_dir = tmp_path / "report"
    data_manager._compute_pipeline_payload.cache_clear()
    try:
        assert report.main(out_dir=out_dir) == 1
    finally:
        data_manager._compute_pipeline_payload.cache_clear()
    assert not out_dir.exists()
