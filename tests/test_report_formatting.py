import os

import pandas as pd
import pytest

from mpg_lca.engine import calculate_project
from mpg_lca.fixtures import SAMPLE_PROJECT_ID, sample_source
from mpg_lca.reporting import (
    REPORT_COLUMNS, element_breakdown_frame, format_result_frame, layer_detail_frame,
    phase_table_frame, print_result, save_report,
)


@pytest.fixture(scope="module")
def results():
    source = sample_source()
    return [calculate_project(source, SAMPLE_PROJECT_ID), calculate_project(source, "unknown-project")]


def test_phase_table_frame(results):
    df = phase_table_frame(results[0].totals.phases)
    assert list(df["Phase"]) == ["A1-A3", "A4", "A5", "B4", "C1", "C2", "C3", "C4", "D"]
    assert df["Impact (kgCO2e)"].iloc[0] == pytest.approx(4066.537125)


def test_element_breakdown_frame(results):
    df = element_breakdown_frame(results[0])
    assert len(df) == 3
    assert df["Share (%)"].sum() == pytest.approx(100.0)
    assert df["Total A-C (kgCO2e)"].sum() == pytest.approx(results[0].totals.total_a_to_c)


def test_layer_detail_frame(results):
    df = layer_detail_frame(results[0])
    assert len(df) == 10
    wool = df[df["Layer ID"] == "wall-2"].iloc[0]
    assert wool["Replacements"] == 1
    assert wool["Service Life Source"] == "category"
    assert wool["Mass (kg)"] == pytest.approx(300.0)


def test_result_frame_columns_and_failures(results):
    df = format_result_frame(results)
    assert list(df.columns) == REPORT_COLUMNS
    assert list(df["Status"]) == ["succeeded", "failed"]

    failed = df.iloc[1]
    assert failed["Error Kind"] == "ProjectNotFound"
    assert failed["Error Entity"] == "unknown-project"
    # phase columns of failed rows are filled, not NaN
    assert failed["[Phase] A1-A3"] == 0.0
    assert not df[[c for c in df.columns if c.startswith("[Phase]")]].isnull().values.any()


def test_save_report(results, tmp_path):
    csv_path, xlsx_path = save_report(results, str(tmp_path))
    assert os.path.exists(csv_path)
    assert os.path.exists(xlsx_path)

    summary = pd.read_csv(csv_path)
    assert summary["MPG (kgCO2e/m²/yr)"].iloc[0] == pytest.approx(results[0].mpg_value)

    sheets = pd.read_excel(xlsx_path, sheet_name=None)
    assert set(sheets) == {"Summary", "Elements", "Layers"}
    assert len(sheets["Layers"]) == 10


def test_print_result(results, capsys):
    print_result(results[0], sample_source().load_project(SAMPLE_PROJECT_ID))
    out = capsys.readouterr().out
    assert "COMPLIANT" in out
    assert "0.639" in out

    print_result(results[1])
    out = capsys.readouterr().out
    assert "ProjectNotFound" in out
