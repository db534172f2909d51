import os
import logging
from dataclasses import asdict, fields
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .constants import (
    DEFAULT_REFERENCE_VALUES, REFERENCE_VALUE_SOURCE, REFERENCE_VALUE_VALID_FROM,
)
from .errors import ProjectNotFound, InvalidComposition
from .models import (
    Project, Element, Layer, MaterialRecord, ReferenceValue,
    ElementComposition, CompositionSnapshot,
)

logger = logging.getLogger(__name__)

SHEETS = ("projects", "elements", "layers", "materials", "reference_values")


class CompositionSource:
    """
    Read interface onto the composition store. Implementations return typed
    values; None means "not found".
    """

    def list_project_ids(self) -> List[str]:
        raise NotImplementedError

    def load_project(self, project_id: str) -> Optional[Project]:
        raise NotImplementedError

    def load_elements(self, project_id: str) -> List[Element]:
        raise NotImplementedError

    def load_layers(self, element_id: str) -> List[Layer]:
        raise NotImplementedError

    def load_material(self, material_id: str) -> Optional[MaterialRecord]:
        raise NotImplementedError

    def lookup_reference_value(self, building_type: str) -> Optional[ReferenceValue]:
        raise NotImplementedError


class InMemoryCompositionSource(CompositionSource):
    """Composition held in dictionaries, e.g. the sample fixture or a parsed workbook."""

    def __init__(
        self,
        projects: Iterable[Project] = (),
        elements: Iterable[Element] = (),
        layers: Iterable[Layer] = (),
        materials: Iterable[MaterialRecord] = (),
        reference_values: Iterable[ReferenceValue] = (),
    ):
        self.projects: Dict[str, Project] = {p.id: p for p in projects}
        self.elements: Dict[str, List[Element]] = {}
        for e in elements:
            self.elements.setdefault(e.project_id, []).append(e)
        self.layers: Dict[str, List[Layer]] = {}
        for layer in layers:
            self.layers.setdefault(layer.element_id, []).append(layer)
        self.materials: Dict[str, MaterialRecord] = {m.id: m for m in materials}
        self.reference_values: Dict[str, ReferenceValue] = {r.building_type: r for r in reference_values}

    def list_project_ids(self) -> List[str]:
        return list(self.projects)

    def load_project(self, project_id: str) -> Optional[Project]:
        return self.projects.get(project_id)

    def load_elements(self, project_id: str) -> List[Element]:
        return list(self.elements.get(project_id, []))

    def load_layers(self, element_id: str) -> List[Layer]:
        return list(self.layers.get(element_id, []))

    def load_material(self, material_id: str) -> Optional[MaterialRecord]:
        return self.materials.get(material_id)

    def lookup_reference_value(self, building_type: str) -> Optional[ReferenceValue]:
        return self.reference_values.get(building_type)

    def all_elements(self) -> List[Element]:
        return [e for group in self.elements.values() for e in group]

    def all_layers(self) -> List[Layer]:
        return [layer for group in self.layers.values() for layer in group]


def default_reference_values() -> List[ReferenceValue]:
    return [
        ReferenceValue(
            building_type=row["building_type"],
            mpg_limit=row["mpg_limit"],
            energy_label=row["energy_label"],
            operational_carbon=row["operational_carbon"],
            source=REFERENCE_VALUE_SOURCE,
            valid_from=REFERENCE_VALUE_VALID_FROM,
        )
        for row in DEFAULT_REFERENCE_VALUES
    ]


def load_snapshot(source: CompositionSource, project_id: str) -> CompositionSnapshot:
    """
    Read everything a calculation needs in one pass. Materials that cannot
    be loaded are left out; the resolver reports them.
    """
    project = source.load_project(project_id)
    if project is None:
        raise ProjectNotFound(f"Project {project_id} not found", entity_id=project_id)

    compositions = []
    material_ids: List[str] = []
    for element in source.load_elements(project_id):
        layers = sorted(source.load_layers(element.id), key=lambda layer: layer.position)
        positions = [layer.position for layer in layers]
        if len(set(positions)) != len(positions):
            raise InvalidComposition(
                f"Element '{element.name}' has duplicate layer positions {positions}",
                entity_id=element.id,
            )
        compositions.append(ElementComposition(element=element, layers=tuple(layers)))
        for layer in layers:
            if layer.material_id not in material_ids:
                material_ids.append(layer.material_id)

    materials = {}
    for material_id in material_ids:
        record = source.load_material(material_id)
        if record is not None:
            materials[material_id] = record

    reference_value = source.lookup_reference_value(project.building_type)

    logger.debug(
        f"Loaded snapshot for project {project_id}: {len(compositions)} elements, "
        f"{sum(len(c.layers) for c in compositions)} layers, {len(materials)} materials"
    )
    return CompositionSnapshot(
        project=project,
        elements=tuple(compositions),
        materials=materials,
        reference_value=reference_value,
    )


# ============================================================================
# EXCEL WORKBOOK
# ============================================================================

def _clean(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return None
    return value


def _as_id(value: Any) -> Optional[str]:
    value = _clean(value)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _as_float(value: Any) -> Optional[float]:
    value = _clean(value)
    return None if value is None else float(value)


def _as_str(value: Any) -> Optional[str]:
    value = _clean(value)
    return None if value is None else str(value).strip()


def _as_bool(value: Any, default: bool) -> bool:
    value = _clean(value)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _rows(df: pd.DataFrame, required: Iterable[str], sheet: str) -> List[Dict[str, Any]]:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Sheet '{sheet}' is missing columns: {missing}")
    return df.to_dict(orient="records")


def parse_project_row(row: Dict[str, Any]) -> Project:
    return Project(
        id=_as_id(row["id"]),
        name=_as_str(row.get("name")) or _as_id(row["id"]),
        gross_floor_area=float(row["gross_floor_area"]),
        building_type=_as_str(row["building_type"]),
        study_period=float(row["study_period"]),
        energy_label=_as_str(row.get("energy_label")),
        construction_system=_as_str(row.get("construction_system")),
    )


def parse_element_row(row: Dict[str, Any]) -> Element:
    return Element(
        id=_as_id(row["id"]),
        project_id=_as_id(row["project_id"]),
        name=_as_str(row.get("name")) or _as_id(row["id"]),
        category=_as_str(row.get("category")) or "other",
        quantity=float(row["quantity"]),
        quantity_unit=_as_str(row.get("quantity_unit")) or "m2",
        area_per_unit=_as_float(row.get("area_per_unit")),
        sfb_code=_as_str(row.get("sfb_code")),
    )


def parse_layer_row(row: Dict[str, Any]) -> Layer:
    coverage = _as_float(row.get("coverage"))
    return Layer(
        id=_as_id(row["id"]),
        element_id=_as_id(row["element_id"]),
        position=int(row["position"]),
        material_id=_as_id(row["material_id"]),
        thickness=float(row["thickness"]),
        coverage=1.0 if coverage is None else coverage,
        custom_lifespan=_as_float(row.get("custom_lifespan")),
        custom_transport_km=_as_float(row.get("custom_transport_km")),
        custom_eol_scenario=_as_str(row.get("custom_eol_scenario")),
    )


def parse_material_row(row: Dict[str, Any]) -> MaterialRecord:
    rating = _as_float(row.get("quality_rating"))
    return MaterialRecord(
        id=_as_id(row["id"]),
        name=_as_str(row.get("name")) or _as_id(row["id"]),
        category=_as_str(row.get("category")) or "other",
        subcategory=_as_str(row.get("subcategory")),
        declared_unit=_as_str(row.get("declared_unit")),
        conversion_to_kg=_as_float(row.get("conversion_to_kg")),
        density=_as_float(row.get("density")),
        gwp_a1_a3=_as_float(row.get("gwp_a1_a3")),
        gwp_a4=_as_float(row.get("gwp_a4")),
        gwp_a5=_as_float(row.get("gwp_a5")),
        gwp_c1=_as_float(row.get("gwp_c1")),
        gwp_c2=_as_float(row.get("gwp_c2")),
        gwp_c3=_as_float(row.get("gwp_c3")),
        gwp_c4=_as_float(row.get("gwp_c4")),
        gwp_d=_as_float(row.get("gwp_d")),
        reference_service_life=_as_float(row.get("reference_service_life")),
        transport_distance_km=_as_float(row.get("transport_distance_km")),
        transport_mode=_as_str(row.get("transport_mode")),
        quality_rating=None if rating is None else int(rating),
        is_generic=_as_bool(row.get("is_generic"), default=True),
    )


def parse_reference_row(row: Dict[str, Any]) -> ReferenceValue:
    valid_from = _clean(row.get("valid_from"))
    return ReferenceValue(
        building_type=_as_str(row["building_type"]),
        mpg_limit=float(row["mpg_limit"]),
        energy_label=_as_str(row.get("energy_label")),
        operational_carbon=_as_float(row.get("operational_carbon")),
        source=_as_str(row.get("source")),
        valid_from=None if valid_from is None else str(valid_from)[:10],
    )


class ExcelCompositionSource(InMemoryCompositionSource):
    """
    Composition workbook (sheets: projects, elements, layers, materials,
    reference_values). The whole workbook is read once, at construction,
    and parsed into typed values. A workbook without a reference_values
    sheet gets the built-in limits.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(*_read_workbook(path))


def _read_workbook(path: str):
    if not os.path.exists(path):
        raise FileNotFoundError(f"Composition workbook not found at {path}")

    sheets = pd.read_excel(path, sheet_name=None)
    for name in SHEETS[:4]:
        if name not in sheets:
            raise ValueError(f"Composition workbook {path} has no '{name}' sheet")

    projects = [parse_project_row(r) for r in _rows(
        sheets["projects"], ("id", "gross_floor_area", "building_type", "study_period"), "projects")]
    elements = [parse_element_row(r) for r in _rows(
        sheets["elements"], ("id", "project_id", "quantity"), "elements")]
    layers = [parse_layer_row(r) for r in _rows(
        sheets["layers"], ("id", "element_id", "position", "material_id", "thickness"), "layers")]
    materials = [parse_material_row(r) for r in _rows(
        sheets["materials"], ("id",), "materials")]

    if "reference_values" in sheets:
        reference_values = [parse_reference_row(r) for r in _rows(
            sheets["reference_values"], ("building_type", "mpg_limit"), "reference_values")]
    else:
        logger.warning(f"Workbook {path} has no 'reference_values' sheet. Using built-in MPG limits.")
        reference_values = default_reference_values()

    logger.info(
        f"Loaded {len(projects)} projects, {len(elements)} elements, {len(layers)} layers "
        f"and {len(materials)} materials from {path}"
    )
    return projects, elements, layers, materials, reference_values


def _frame(records, cls) -> pd.DataFrame:
    columns = [f.name for f in fields(cls)]
    return pd.DataFrame([asdict(r) for r in records], columns=columns)


def write_composition_workbook(source: InMemoryCompositionSource, path: str) -> str:
    """Write an in-memory composition to a workbook readable by ExcelCompositionSource."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        _frame(source.projects.values(), Project).to_excel(writer, sheet_name="projects", index=False)
        _frame(source.all_elements(), Element).to_excel(writer, sheet_name="elements", index=False)
        _frame(source.all_layers(), Layer).to_excel(writer, sheet_name="layers", index=False)
        _frame(source.materials.values(), MaterialRecord).to_excel(writer, sheet_name="materials", index=False)
        _frame(source.reference_values.values(), ReferenceValue).to_excel(
            writer, sheet_name="reference_values", index=False)
    logger.info(f"Composition written to {path}")
    return path
