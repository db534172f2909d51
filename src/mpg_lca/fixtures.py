"""
Sample composition: a 120 m² detached timber-frame house (houtskelet),
75-year study period, energy label A.

Three elements (north facade, roof, ground floor) built from generic
material data. Used by the harness when no workbook is given, and by the
tests as a worked example.
"""
from .models import Element, Layer, MaterialRecord, Project
from .repository import InMemoryCompositionSource, default_reference_values

SAMPLE_PROJECT_ID = "sample-timber-frame-house"

WALL_ID = "el-facade-north"
ROOF_ID = "el-roof"
FLOOR_ID = "el-ground-floor"

SAMPLE_PROJECT = Project(
    id=SAMPLE_PROJECT_ID,
    name="Vrijstaande woning houtskeletbouw",
    gross_floor_area=120.0,
    building_type="vrijstaand",
    study_period=75.0,
    energy_label="A",
    construction_system="houtskelet",
)

SAMPLE_MATERIALS = (
    MaterialRecord(
        id="mat-osb", name="OSB plaat", category="timber", subcategory="board",
        declared_unit="1 kg", conversion_to_kg=1.0, density=600.0,
        gwp_a1_a3=0.30, gwp_a4=0.02, gwp_a5=0.01, gwp_c2=0.01, gwp_c3=0.05, gwp_d=-0.40,
        reference_service_life=75.0, transport_distance_km=100.0, transport_mode="truck",
    ),
    MaterialRecord(
        id="mat-mineral-wool", name="Minerale wol", category="insulation",
        declared_unit="1 kg", conversion_to_kg=1.0, density=30.0,
        gwp_a1_a3=1.00, gwp_a4=0.05, gwp_a5=0.02, gwp_c2=0.01, gwp_c4=0.02,
    ),
    MaterialRecord(
        id="mat-structural-timber", name="Constructiehout (vuren)", category="timber",
        declared_unit="1 kg", conversion_to_kg=1.0, density=470.0,
        gwp_a1_a3=0.15, gwp_a4=0.02, gwp_a5=0.01, gwp_c2=0.01, gwp_c3=0.03, gwp_d=-0.30,
        reference_service_life=75.0,
    ),
    MaterialRecord(
        id="mat-gypsum-board", name="Gipsplaat", category="finishes",
        declared_unit="1 kg", conversion_to_kg=1.0, density=800.0,
        gwp_a1_a3=0.12, gwp_a4=0.01, gwp_a5=0.01, gwp_c2=0.01, gwp_c4=0.01,
        reference_service_life=50.0,
    ),
    MaterialRecord(
        id="mat-clay-roof-tile", name="Keramische dakpan", category="finishes",
        declared_unit="1 m2",
        gwp_a1_a3=9.0, gwp_a4=0.8, gwp_a5=0.2, gwp_c2=0.3, gwp_c4=0.2,
        reference_service_life=75.0,
    ),
    MaterialRecord(
        id="mat-ceramic-floor-tile", name="Keramische vloertegel", category="finishes",
        declared_unit="1 kg", conversion_to_kg=1.0, density=2000.0,
        gwp_a1_a3=0.55, gwp_a4=0.03, gwp_a5=0.02, gwp_c2=0.01, gwp_c4=0.01,
        reference_service_life=75.0,
    ),
    MaterialRecord(
        id="mat-concrete-c30", name="Beton C30/37", category="concrete",
        declared_unit="1 m3", conversion_to_kg=2400.0, density=2400.0,
        gwp_a1_a3=150.0, gwp_a4=4.0, gwp_a5=1.0,
        gwp_c1=2.0, gwp_c2=4.0, gwp_c3=2.0, gwp_c4=1.0, gwp_d=-5.0,
        reference_service_life=100.0, transport_distance_km=50.0,
    ),
    MaterialRecord(
        id="mat-eps", name="EPS isolatie", category="insulation",
        declared_unit="1 kg", conversion_to_kg=1.0, density=20.0,
        gwp_a1_a3=3.3, gwp_a4=0.1, gwp_a5=0.05, gwp_c2=0.01, gwp_c3=2.0,
        reference_service_life=75.0,
    ),
)

SAMPLE_ELEMENTS = (
    Element(id=WALL_ID, project_id=SAMPLE_PROJECT_ID, name="Gevel Noord",
            category="exterior_wall", quantity=50.0, sfb_code="21"),
    Element(id=ROOF_ID, project_id=SAMPLE_PROJECT_ID, name="Dakvlak",
            category="roof", quantity=65.0, sfb_code="27"),
    Element(id=FLOOR_ID, project_id=SAMPLE_PROJECT_ID, name="Begane grond vloer",
            category="floor", quantity=60.0, sfb_code="23"),
)

SAMPLE_LAYERS = (
    # facade, outside to inside
    Layer(id="wall-1", element_id=WALL_ID, position=1, material_id="mat-osb", thickness=0.012),
    Layer(id="wall-2", element_id=WALL_ID, position=2, material_id="mat-mineral-wool", thickness=0.200),
    Layer(id="wall-3", element_id=WALL_ID, position=3, material_id="mat-structural-timber",
          thickness=0.195, coverage=0.075),
    Layer(id="wall-4", element_id=WALL_ID, position=4, material_id="mat-gypsum-board", thickness=0.0125),
    # roof
    Layer(id="roof-1", element_id=ROOF_ID, position=1, material_id="mat-clay-roof-tile", thickness=0.015),
    Layer(id="roof-2", element_id=ROOF_ID, position=2, material_id="mat-mineral-wool", thickness=0.240),
    Layer(id="roof-3", element_id=ROOF_ID, position=3, material_id="mat-structural-timber",
          thickness=0.240, coverage=0.08),
    # ground floor, top to bottom
    Layer(id="floor-1", element_id=FLOOR_ID, position=1, material_id="mat-ceramic-floor-tile", thickness=0.010),
    Layer(id="floor-2", element_id=FLOOR_ID, position=2, material_id="mat-concrete-c30", thickness=0.150),
    Layer(id="floor-3", element_id=FLOOR_ID, position=3, material_id="mat-eps", thickness=0.100),
)


def sample_source() -> InMemoryCompositionSource:
    """Fresh in-memory store holding the sample house and the built-in reference values."""
    return InMemoryCompositionSource(
        projects=[SAMPLE_PROJECT],
        elements=SAMPLE_ELEMENTS,
        layers=SAMPLE_LAYERS,
        materials=SAMPLE_MATERIALS,
        reference_values=default_reference_values(),
    )
