"""
Fallback chains used by the engine, in one place.

Precedence everywhere: custom (layer) override > material-specific value >
category default > global default. Nothing else in the package invents a
default value.
"""
import logging
from typing import Optional, Tuple

from .config import EngineSettings
from .constants import (
    DEFAULT_DECLARED_UNIT, DEFAULT_TRANSPORT_DISTANCES, GLOBAL_DEFAULT_TRANSPORT_DISTANCE_KM,
    TRANSPORT_EMISSION_FACTORS, DEFAULT_TRANSPORT_MODE, A5_FACTORS,
    OPERATIONAL_CARBON_BY_LABEL, REFERENCE_VALUE_SOURCE, ServiceLifeSource,
)
from .errors import ReferenceValueMissing
from .models import DeclaredUnit, ReferenceValue
from .utils.calculations import parse_declared_unit

logger = logging.getLogger(__name__)


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


def resolve_service_life(
    custom_lifespan: Optional[float],
    material_service_life: Optional[float],
    category: Optional[str],
    settings: EngineSettings,
) -> Tuple[float, ServiceLifeSource]:
    """
    Effective service life (years) and where it came from.

    custom_lifespan is expected to be validated by the caller; a
    non-positive material value counts as "not declared".
    """
    if custom_lifespan is not None:
        return float(custom_lifespan), "custom"
    material_value = _positive(material_service_life)
    if material_value is not None:
        return material_value, "material"
    category_value = _positive(settings.category_service_life.get((category or "").lower()))
    if category_value is not None:
        return category_value, "category"
    return float(settings.global_service_life_years), "global"


def resolve_declared_unit(text: Optional[str]) -> DeclaredUnit:
    if text is None or not str(text).strip():
        text = DEFAULT_DECLARED_UNIT
    return parse_declared_unit(str(text))


def resolve_density(density: Optional[float]) -> Optional[float]:
    """Density in kg/m³, or None when absent or not physical."""
    return _positive(density)


def resolve_conversion_to_kg(
    conversion_to_kg: Optional[float],
    unit: DeclaredUnit,
    density: Optional[float],
) -> Optional[float]:
    """
    kg per declared unit.

    explicit value > mass unit amount ('1 t' -> 1000) > volume amount x density.
    Area and other units have no implicit mass, so None is returned for them
    unless the record gives an area weight explicitly.
    """
    explicit = _positive(conversion_to_kg)
    if explicit is not None:
        return explicit
    if unit.kind == "mass":
        return unit.amount
    if unit.kind == "volume" and density is not None:
        return unit.amount * density
    return None


def resolve_transport(
    distance_km: Optional[float],
    mode: Optional[str],
    category: Optional[str],
) -> Tuple[float, str]:
    """Default transport leg (km, mode) a material's A4 coefficient refers to."""
    km = _positive(distance_km)
    if km is None:
        km = float(DEFAULT_TRANSPORT_DISTANCES.get((category or "").lower(), GLOBAL_DEFAULT_TRANSPORT_DISTANCE_KM))
    mode = (mode or "").strip().lower()
    if mode not in TRANSPORT_EMISSION_FACTORS:
        mode = DEFAULT_TRANSPORT_MODE
    return km, mode


def transport_emission_factor(mode: str) -> float:
    return TRANSPORT_EMISSION_FACTORS.get(mode, TRANSPORT_EMISSION_FACTORS[DEFAULT_TRANSPORT_MODE])


def a5_factor(element_category: Optional[str]) -> float:
    return A5_FACTORS.get((element_category or "").lower(), A5_FACTORS["other"])


def resolve_reference_limit(
    reference_value: Optional[ReferenceValue],
    building_type: str,
    settings: EngineSettings,
) -> Tuple[float, str, Optional[ReferenceValueMissing]]:
    """
    MPG limit for a building type: (limit, source, missing).

    A missing reference value falls back to settings.default_mpg_limit;
    `missing` then carries the reason and the verdict is provisional.
    """
    if reference_value is not None:
        return float(reference_value.mpg_limit), reference_value.source or REFERENCE_VALUE_SOURCE, None
    missing = ReferenceValueMissing(
        f"No MPG reference value for building type '{building_type}'. "
        f"Using default limit {settings.default_mpg_limit} (provisional verdict).",
        entity_id=building_type,
    )
    logger.warning(missing.message)
    return float(settings.default_mpg_limit), "default", missing


def resolve_operational_carbon(
    energy_label: Optional[str],
    reference_value: Optional[ReferenceValue],
) -> Optional[float]:
    """Typical operational carbon (kg CO2-eq/m2/year): energy label table > reference value."""
    if energy_label and energy_label in OPERATIONAL_CARBON_BY_LABEL:
        return float(OPERATIONAL_CARBON_BY_LABEL[energy_label])
    if reference_value is not None and reference_value.operational_carbon is not None:
        return float(reference_value.operational_carbon)
    return None
