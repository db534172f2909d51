import math

import pytest

from mpg_lca.config import EngineSettings
from mpg_lca.constants import REPORTED_PHASES
from mpg_lca.defaults import a5_factor
from mpg_lca.errors import InvalidGeometry, UnitConversionError
from mpg_lca.layers import LayerImpactCalculator
from mpg_lca.models import Layer, MaterialRecord
from mpg_lca.resolver import normalise_material
from mpg_lca.utils.calculations import parse_declared_unit, installed_volume_m3


def _material(settings=None, **kwargs):
    record = dict(id="m1", name="Test material", category="timber", declared_unit="1 kg", density=600.0,
                  gwp_a1_a3=0.30, gwp_a4=0.02, gwp_a5=0.01, gwp_c2=0.01, gwp_c3=0.05, gwp_d=-0.40,
                  transport_distance_km=100.0)
    record.update(kwargs)
    return normalise_material(MaterialRecord(**record), settings or EngineSettings())


def _layer(**kwargs):
    values = dict(id="L1", element_id="E1", position=1, material_id="m1", thickness=0.012)
    values.update(kwargs)
    return Layer(**values)


def test_mass_based_layer():
    # 0.012 m x 50 m2 = 0.6 m3; x 600 kg/m3 = 360 kg
    quantity, phases = LayerImpactCalculator().calculate(_layer(), _material(), 50.0)

    assert math.isclose(quantity.volume_m3, 0.6)
    assert math.isclose(quantity.mass_kg, 360.0)
    assert math.isclose(quantity.units, 360.0)
    assert math.isclose(phases.a1_a3, 108.0)
    assert math.isclose(phases.a4, 7.2)
    assert math.isclose(phases.c3, 18.0)
    assert math.isclose(phases.d, -144.0)
    assert phases.b4 == 0.0


def test_partial_coverage_scales_volume():
    # studs: 0.195 m deep, 7.5% of 50 m2
    layer = _layer(thickness=0.195, coverage=0.075)
    quantity, phases = LayerImpactCalculator().calculate(layer, _material(density=470.0, gwp_a1_a3=0.15), 50.0)
    assert math.isclose(quantity.volume_m3, 0.73125)
    assert math.isclose(quantity.mass_kg, 343.6875)
    assert math.isclose(phases.a1_a3, 51.553125)


def test_area_declared_material_without_density():
    material = _material(declared_unit="1 m2", density=None, gwp_a1_a3=9.0)
    quantity, phases = LayerImpactCalculator().calculate(_layer(thickness=0.015), material, 65.0)
    assert quantity.mass_kg is None
    assert math.isclose(quantity.units, 65.0)
    assert math.isclose(phases.a1_a3, 585.0)


def test_area_declared_per_multiple_square_metres():
    material = _material(declared_unit="10 m2", density=None, gwp_a1_a3=9.0)
    quantity, _ = LayerImpactCalculator().calculate(_layer(coverage=0.5), material, 40.0)
    # 0.5 x 40 m2 / 10 m2
    assert math.isclose(quantity.units, 2.0)


def test_volume_declared_material_with_density():
    material = _material(declared_unit="1 m3", density=2400.0, gwp_a1_a3=150.0)
    quantity, phases = LayerImpactCalculator().calculate(_layer(thickness=0.15), material, 60.0)
    assert math.isclose(quantity.units, 9.0)
    assert math.isclose(phases.a1_a3, 1350.0)


def test_missing_density_cannot_be_sized():
    material = _material(density=None)
    with pytest.raises(UnitConversionError) as exc:
        LayerImpactCalculator().calculate(_layer(), material, 50.0)
    assert exc.value.entity_id == "m1"


def test_coverage_zero_gives_zero_table():
    quantity, phases = LayerImpactCalculator().calculate(_layer(coverage=0.0), _material(), 50.0)
    assert quantity.units == 0.0
    for phase in REPORTED_PHASES:
        assert phases.get(phase) == 0.0


@pytest.mark.parametrize(
    "thickness,coverage",
    [(0.0, 1.0), (-0.01, 1.0), (math.nan, 1.0), (0.1, 1.2), (0.1, -0.1), (0.1, math.nan)],
)
def test_invalid_geometry(thickness, coverage):
    with pytest.raises(InvalidGeometry) as exc:
        LayerImpactCalculator().calculate(_layer(thickness=thickness, coverage=coverage), _material(), 50.0)
    assert exc.value.entity_id == "L1"


def test_invalid_geometry_checked_before_unit_conversion():
    # would also fail unit conversion, geometry is reported first
    with pytest.raises(InvalidGeometry):
        LayerImpactCalculator().calculate(_layer(thickness=0.0), _material(density=None), 50.0)


@pytest.mark.parametrize("km", [-5.0, math.nan])
def test_invalid_custom_transport_distance(km):
    with pytest.raises(InvalidGeometry):
        LayerImpactCalculator().calculate(_layer(custom_transport_km=km), _material(), 50.0)


def test_linear_in_element_area():
    calc = LayerImpactCalculator()
    _, single = calc.calculate(_layer(), _material(), 50.0)
    _, double = calc.calculate(_layer(), _material(), 100.0)
    for phase in REPORTED_PHASES:
        assert math.isclose(double.get(phase), 2 * single.get(phase))


def test_custom_transport_rescales_declared_a4():
    _, default = LayerImpactCalculator().calculate(_layer(), _material(), 50.0)
    _, far = LayerImpactCalculator().calculate(_layer(custom_transport_km=200.0), _material(), 50.0)
    assert math.isclose(far.a4, 2 * default.a4)
    assert math.isclose(far.a1_a3, default.a1_a3)


def test_custom_transport_without_declared_a4():
    # 360 kg = 0.36 t x 100 km x 0.062 kgCO2e/tkm (truck)
    material = _material(gwp_a4=None, transport_mode="truck")
    _, phases = LayerImpactCalculator().calculate(_layer(custom_transport_km=100.0), material, 50.0)
    assert math.isclose(phases.a4, 2.232)


def test_custom_transport_needs_mass_when_a4_undeclared():
    material = _material(declared_unit="1 m2", density=None, gwp_a4=None)
    with pytest.raises(UnitConversionError):
        LayerImpactCalculator().calculate(_layer(custom_transport_km=100.0), material, 50.0)


def test_a5_estimate_only_when_enabled_and_undeclared():
    material = _material(gwp_a5=None)
    _, off = LayerImpactCalculator().calculate(_layer(), material, 50.0, "exterior_wall")
    assert off.a5 == 0.0

    settings = EngineSettings(estimate_missing_a5=True)
    _, on = LayerImpactCalculator(settings).calculate(_layer(), material, 50.0, "exterior_wall")
    assert math.isclose(on.a5, on.a1_a3 * a5_factor("exterior_wall"))

    # a declared A5 is never replaced by the estimate
    _, declared = LayerImpactCalculator(settings).calculate(_layer(), _material(), 50.0, "exterior_wall")
    assert math.isclose(declared.a5, 3.6)


def test_end_of_life_scenario_factors():
    settings = EngineSettings(eol_scenario_factors={"recycling": {"C3": 0.5, "D": 2.0}})
    calc = LayerImpactCalculator(settings)
    _, base = calc.calculate(_layer(), _material(), 50.0)
    _, recycled = calc.calculate(_layer(custom_eol_scenario="Recycling"), _material(), 50.0)
    assert math.isclose(recycled.c3, base.c3 * 0.5)
    assert math.isclose(recycled.d, base.d * 2.0)
    assert math.isclose(recycled.c2, base.c2)

    # unknown scenario leaves declared values in place
    _, unknown = calc.calculate(_layer(custom_eol_scenario="landfill"), _material(), 50.0)
    assert unknown == base


def test_parse_declared_unit():
    assert parse_declared_unit("1 kg").kind == "mass"
    tonne = parse_declared_unit("1 t")
    assert tonne.kind == "mass" and tonne.amount == 1000.0
    assert parse_declared_unit("1 m³").kind == "volume"
    area = parse_declared_unit("2 m2")
    assert area.kind == "area" and area.amount == 2.0
    assert parse_declared_unit("1 piece").kind == "other"


def test_installed_volume():
    assert math.isclose(installed_volume_m3(0.2, 0.5, 10.0), 1.0)
