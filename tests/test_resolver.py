import pytest

from mpg_lca.config import EngineSettings
from mpg_lca.errors import InvalidMaterialData, MaterialNotFound
from mpg_lca.models import MaterialRecord
from mpg_lca.resolver import MaterialResolver


def _resolver(*records):
    return MaterialResolver({r.id: r for r in records}, EngineSettings())


def test_missing_coefficients_become_zero():
    record = MaterialRecord(id="m1", name="Partial EPD", category="timber", gwp_a1_a3=0.3, gwp_d=-0.4)
    material = _resolver(record).resolve("m1")

    assert material.coefficients.a1_a3 == 0.3
    assert material.coefficients.a4 == 0.0
    assert material.coefficients.c4 == 0.0
    assert material.declared_phases == frozenset({"A1-A3", "D"})


def test_unknown_material():
    with pytest.raises(MaterialNotFound) as exc:
        _resolver().resolve("missing")
    assert exc.value.entity_id == "missing"
    assert exc.value.kind == "MaterialNotFound"


def test_negative_burden_coefficient_is_rejected():
    record = MaterialRecord(id="m1", name="Broken", category="timber", gwp_c3=-1.0)
    with pytest.raises(InvalidMaterialData):
        _resolver(record).resolve("m1")


def test_negative_module_d_is_allowed():
    record = MaterialRecord(id="m1", name="Credit", category="metal", gwp_a1_a3=2.0, gwp_d=-1.5)
    assert _resolver(record).resolve("m1").coefficients.d == -1.5


def test_resolution_is_memoised():
    resolver = _resolver(MaterialRecord(id="m1", name="OSB", category="timber", gwp_a1_a3=0.3))
    assert resolver.resolve("m1") is resolver.resolve("m1")


def test_declared_unit_and_conversion():
    resolver = _resolver(
        MaterialRecord(id="blank", name="Blank unit", category="timber", density=500.0),
        MaterialRecord(id="tonne", name="Steel", category="metal", declared_unit="1 t", density=7850.0),
        MaterialRecord(id="cube", name="Concrete", category="concrete", declared_unit="1 m3", density=2400.0),
        MaterialRecord(id="explicit", name="Board", category="finishes", declared_unit="1 m2",
                       conversion_to_kg=10.0),
        MaterialRecord(id="area", name="Tile", category="finishes", declared_unit="1 m2"),
    )

    blank = resolver.resolve("blank")
    assert blank.declared_unit.text == "1 kg"
    assert blank.conversion_to_kg == 1.0

    assert resolver.resolve("tonne").conversion_to_kg == 1000.0
    assert resolver.resolve("cube").conversion_to_kg == 2400.0
    assert resolver.resolve("explicit").conversion_to_kg == 10.0
    assert resolver.resolve("area").conversion_to_kg is None


@pytest.mark.parametrize("density", [None, 0.0, -5.0])
def test_non_physical_density_is_absent(density):
    record = MaterialRecord(id="m1", name="X", category="timber", density=density)
    material = _resolver(record).resolve("m1")
    assert material.density is None
    assert not material.has_density


def test_transport_defaults_by_category():
    resolver = _resolver(
        MaterialRecord(id="c", name="Concrete", category="concrete"),
        MaterialRecord(id="x", name="Unknown", category="unknown", transport_mode="rocket"),
        MaterialRecord(id="t", name="Timber", category="timber", transport_distance_km=80.0, transport_mode="Train"),
    )
    concrete = resolver.resolve("c")
    assert (concrete.transport_distance_km, concrete.transport_mode) == (50.0, "truck")
    unknown = resolver.resolve("x")
    assert (unknown.transport_distance_km, unknown.transport_mode) == (150.0, "truck")
    timber = resolver.resolve("t")
    assert (timber.transport_distance_km, timber.transport_mode) == (80.0, "train")
