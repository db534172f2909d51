from dataclasses import replace

import pandas as pd
import pytest

from mpg_lca.engine import calculate_project
from mpg_lca.errors import ProjectNotFound
from mpg_lca.fixtures import SAMPLE_PROJECT_ID, WALL_ID, sample_source
from mpg_lca.repository import (
    ExcelCompositionSource, default_reference_values, load_snapshot, write_composition_workbook,
)


def test_snapshot_orders_layers_and_collects_materials():
    source = sample_source()
    source.layers[WALL_ID].reverse()
    snapshot = load_snapshot(source, SAMPLE_PROJECT_ID)

    wall = snapshot.elements[0]
    assert [layer.position for layer in wall.layers] == [1, 2, 3, 4]
    assert len(snapshot.materials) == 8
    assert snapshot.reference_value.building_type == "vrijstaand"


def test_snapshot_leaves_out_unknown_materials():
    source = sample_source()
    source.layers[WALL_ID][0] = replace(source.layers[WALL_ID][0], material_id="ghost")
    snapshot = load_snapshot(source, SAMPLE_PROJECT_ID)
    assert "ghost" not in snapshot.materials


def test_snapshot_unknown_project():
    with pytest.raises(ProjectNotFound):
        load_snapshot(sample_source(), "nope")


def test_default_reference_values():
    values = {r.building_type: r for r in default_reference_values()}
    assert values["vrijstaand"].mpg_limit == 0.8
    assert values["utiliteitsbouw"].mpg_limit == 0.5
    assert values["woningbouw"].source == "MPG Bepalingsmethode 2024"


def test_workbook_round_trip(tmp_path):
    path = str(tmp_path / "composition.xlsx")
    write_composition_workbook(sample_source(), path)

    sheets = pd.read_excel(path, sheet_name=None)
    assert set(sheets) == {"projects", "elements", "layers", "materials", "reference_values"}

    source = ExcelCompositionSource(path)
    assert source.list_project_ids() == [SAMPLE_PROJECT_ID]
    assert source.load_material("mat-clay-roof-tile").density is None
    assert source.load_material("mat-osb").gwp_d == -0.40

    from_excel = calculate_project(source, SAMPLE_PROJECT_ID)
    in_memory = calculate_project(sample_source(), SAMPLE_PROJECT_ID)
    assert from_excel.status == "succeeded"
    assert from_excel.mpg_value == pytest.approx(in_memory.mpg_value)
    assert from_excel.totals.total_with_d == pytest.approx(in_memory.totals.total_with_d)


def test_workbook_without_reference_values_uses_defaults(tmp_path):
    path = str(tmp_path / "composition.xlsx")
    write_composition_workbook(sample_source(), path)
    sheets = pd.read_excel(path, sheet_name=None)
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        for name in ("projects", "elements", "layers", "materials"):
            sheets[name].to_excel(writer, sheet_name=name, index=False)

    source = ExcelCompositionSource(path)
    assert source.lookup_reference_value("vrijstaand").mpg_limit == 0.8


@pytest.mark.parametrize("sheet,row_id,column,kind", [
    ("layers", "wall-1", "thickness", "InvalidGeometry"),
    ("projects", SAMPLE_PROJECT_ID, "gross_floor_area", "InvalidComposition"),
])
def test_blank_required_cell_fails_the_calculation(tmp_path, sheet, row_id, column, kind):
    path = str(tmp_path / "composition.xlsx")
    write_composition_workbook(sample_source(), path)
    sheets = pd.read_excel(path, sheet_name=None)
    frame = sheets[sheet]
    frame[column] = frame[column].astype(float)
    frame.loc[frame["id"] == row_id, column] = None
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)

    result = calculate_project(ExcelCompositionSource(path), SAMPLE_PROJECT_ID)
    assert result.status == "failed"
    assert result.error.kind == kind
    assert result.error.entity_id == row_id


def test_missing_workbook(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExcelCompositionSource(str(tmp_path / "missing.xlsx"))


def test_workbook_missing_sheet(tmp_path):
    path = str(tmp_path / "broken.xlsx")
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        pd.DataFrame({"id": ["P1"]}).to_excel(writer, sheet_name="projects", index=False)
    with pytest.raises(ValueError):
        ExcelCompositionSource(path)
