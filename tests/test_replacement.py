import math

import pytest

from mpg_lca.config import EngineSettings
from mpg_lca.errors import InvalidGeometry
from mpg_lca.models import Layer, MaterialRecord, PhaseTable
from mpg_lca.replacement import ReplacementScheduler
from mpg_lca.resolver import normalise_material
from mpg_lca.utils.calculations import replacement_count

INSTALLATION = PhaseTable(a1_a3=100.0, a4=10.0, a5=5.0, c1=1.0, c2=2.0, c3=3.0, c4=4.0, d=-20.0)


def _material(settings=None, **kwargs):
    record = dict(id="m1", name="Test material", category="finishes", declared_unit="1 kg", density=800.0,
                  gwp_a1_a3=0.12, reference_service_life=25.0)
    record.update(kwargs)
    return normalise_material(MaterialRecord(**record), settings or EngineSettings())


def _layer(**kwargs):
    values = dict(id="L1", element_id="E1", position=1, material_id="m1", thickness=0.01)
    values.update(kwargs)
    return Layer(**values)


@pytest.mark.parametrize("study,life,expected", [
    (75, 25, 2),
    (75, 50, 1),
    (75, 75, 0),
    (75, 100, 0),
    (60, 25, 2),
    (75, 7.5, 9),
    (75, 30, 2),
])
def test_replacement_count(study, life, expected):
    assert replacement_count(study, life) == expected


def test_b4_covers_new_instance_and_end_of_life_of_replaced_one():
    schedule = ReplacementScheduler(75).schedule(_layer(), _material(), INSTALLATION)
    # 2 x (100 + 10 + 5 + 1 + 2 + 3 + 4)
    assert schedule.replacements == 2
    assert schedule.service_life_source == "material"
    assert math.isclose(schedule.b4, 250.0)


def test_b4_never_includes_module_d():
    no_credit = INSTALLATION.with_phase("D", 0.0)
    a = ReplacementScheduler(75).schedule(_layer(), _material(), INSTALLATION)
    b = ReplacementScheduler(75).schedule(_layer(), _material(), no_credit)
    assert a.b4 == b.b4


def test_replacement_end_of_life_subset_is_configurable():
    settings = EngineSettings(replacement_eol_phases=("C3", "C4"))
    schedule = ReplacementScheduler(75, settings).schedule(_layer(), _material(), INSTALLATION)
    # 2 x (115 + 3 + 4)
    assert math.isclose(schedule.b4, 244.0)


def test_service_life_at_or_beyond_study_period():
    for life in (75.0, 120.0):
        schedule = ReplacementScheduler(75).schedule(_layer(custom_lifespan=life), _material(), INSTALLATION)
        assert schedule.replacements == 0
        assert schedule.b4 == 0.0


def test_custom_lifespan_overrides_material():
    schedule = ReplacementScheduler(75).schedule(_layer(custom_lifespan=50.0), _material(), INSTALLATION)
    assert schedule.service_life_years == 50.0
    assert schedule.service_life_source == "custom"
    assert schedule.replacements == 1


@pytest.mark.parametrize("lifespan", [0.0, -10.0, math.nan])
def test_non_positive_custom_lifespan(lifespan):
    with pytest.raises(InvalidGeometry):
        ReplacementScheduler(75).schedule(_layer(custom_lifespan=lifespan), _material(), INSTALLATION)


def test_service_life_fallback_chain():
    # category default (insulation: 50)
    material = _material(category="insulation", reference_service_life=None)
    assert material.reference_service_life == 50.0
    assert material.service_life_source == "category"

    # global default for unknown categories
    material = _material(category="unknown", reference_service_life=None)
    assert material.reference_service_life == 50.0
    assert material.service_life_source == "global"

    settings = EngineSettings(global_service_life_years=30.0)
    material = _material(settings, category="unknown", reference_service_life=None)
    schedule = ReplacementScheduler(75, settings).schedule(_layer(), material, INSTALLATION)
    assert schedule.service_life_years == 30.0
    assert schedule.replacements == 2


def test_category_service_life_from_settings():
    settings = EngineSettings(category_service_life={"finishes": 15.0})
    material = _material(settings, reference_service_life=None)
    assert material.reference_service_life == 15.0
    assert ReplacementScheduler(75, settings).schedule(_layer(), material, INSTALLATION).replacements == 4
