import logging
from typing import Optional, Tuple

from .audit import CalculationAudit
from .config import EngineSettings
from .constants import COEFFICIENT_PHASES, PHASE_FIELDS
from .defaults import a5_factor, transport_emission_factor
from .errors import InvalidGeometry, UnitConversionError
from .models import Layer, LayerQuantity, Material, PhaseTable
from .utils.calculations import installed_volume_m3, transport_emissions_kgco2

logger = logging.getLogger(__name__)


def validate_layer_geometry(layer: Layer):
    if layer.thickness is None or not layer.thickness > 0:
        raise InvalidGeometry(
            f"Layer {layer.id} has non-positive thickness ({layer.thickness} m)", entity_id=layer.id
        )
    if layer.coverage is None or not 0.0 <= layer.coverage <= 1.0:
        raise InvalidGeometry(
            f"Layer {layer.id} has coverage {layer.coverage} outside [0, 1]", entity_id=layer.id
        )
    if layer.custom_transport_km is not None and not layer.custom_transport_km >= 0:
        raise InvalidGeometry(
            f"Layer {layer.id} has a negative transport distance ({layer.custom_transport_km} km)",
            entity_id=layer.id,
        )


def layer_quantity(layer: Layer, material: Material, area_m2: float) -> LayerQuantity:
    """
    Installed quantity of a layer, in m³, kg and declared units.

    - density known: mass = volume x density, units = mass / kg-per-declared-unit
      (area-declared materials without an area weight count covered area instead)
    - no density, area-declared: units = covered area / declared amount
    - otherwise the material cannot be sized
    """
    volume = installed_volume_m3(layer.thickness, layer.coverage, area_m2)
    unit = material.declared_unit
    covered_area = layer.coverage * area_m2

    if material.has_density:
        mass = volume * material.density
        if material.conversion_to_kg is not None:
            return LayerQuantity(volume_m3=volume, mass_kg=mass, units=mass / material.conversion_to_kg)
        if unit.kind == "area":
            return LayerQuantity(volume_m3=volume, mass_kg=mass, units=covered_area / unit.amount)
        raise UnitConversionError(
            f"Layer {layer.id}: material '{material.name}' is declared per '{unit.text}', "
            f"which cannot be derived from a mass",
            entity_id=material.id,
        )

    if unit.kind == "area":
        units = covered_area / unit.amount
        mass = units * material.conversion_to_kg if material.conversion_to_kg is not None else None
        return LayerQuantity(volume_m3=volume, mass_kg=mass, units=units)

    raise UnitConversionError(
        f"Layer {layer.id}: material '{material.name}' is declared per '{unit.text}' but has no density",
        entity_id=material.id,
    )


class LayerImpactCalculator:
    """
    Impact of exactly one installed instance of a layer (no replacements).
    """

    def __init__(self, settings: Optional[EngineSettings] = None, audit: Optional[CalculationAudit] = None):
        self.settings = settings or EngineSettings()
        self.audit = audit or CalculationAudit()

    def calculate(
        self,
        layer: Layer,
        material: Material,
        area_m2: float,
        element_category: Optional[str] = None,
    ) -> Tuple[LayerQuantity, PhaseTable]:
        validate_layer_geometry(layer)
        quantity = layer_quantity(layer, material, area_m2)

        values = {
            PHASE_FIELDS[phase]: quantity.units * material.coefficients.get(phase)
            for phase in COEFFICIENT_PHASES
        }

        self.audit.log_calculation(
            context=f"Layer {layer.id} ({material.name}): quantity",
            formula="Thickness(m) * Coverage * Area(m2) [* Density / kgPerUnit]",
            variables={
                "Thickness_m": layer.thickness,
                "Coverage": layer.coverage,
                "Area_m2": area_m2,
                "Density": material.density,
                "DeclaredUnit": material.declared_unit.text,
            },
            result=quantity.units,
            unit="declared units",
        )
        self.audit.log_calculation(
            context=f"Layer {layer.id} ({material.name}): A1-A3",
            formula="Units * GWP_A1-A3",
            variables={"Units": round(quantity.units, 4), "GWP_A1-A3": material.coefficients.a1_a3},
            result=values["a1_a3"],
            unit="kgCO2e",
        )

        if layer.custom_transport_km is not None:
            values["a4"] = self._custom_transport(layer, material, quantity, values["a4"])

        if self.settings.estimate_missing_a5 and "A5" not in material.declared_phases:
            factor = a5_factor(element_category)
            values["a5"] = values["a1_a3"] * factor
            self.audit.log_calculation(
                context=f"Layer {layer.id} ({material.name}): A5 estimate",
                formula="A1-A3 * A5Factor(element category)",
                variables={"A1-A3": round(values["a1_a3"], 4), "A5Factor": factor, "Category": element_category},
                result=values["a5"],
                unit="kgCO2e",
            )

        if layer.custom_eol_scenario:
            self._apply_eol_scenario(layer, values)

        return quantity, PhaseTable(**values)

    def _custom_transport(self, layer: Layer, material: Material, quantity: LayerQuantity, a4: float) -> float:
        km = layer.custom_transport_km
        if "A4" in material.declared_phases:
            scaled = a4 * km / material.transport_distance_km
            self.audit.log_calculation(
                context=f"Layer {layer.id} ({material.name}): A4 custom distance",
                formula="A4 * CustomDist(km) / DefaultDist(km)",
                variables={"A4": round(a4, 4), "Custom_km": km, "Default_km": material.transport_distance_km},
                result=scaled,
                unit="kgCO2e",
            )
            return scaled

        if quantity.mass_kg is None:
            raise UnitConversionError(
                f"Layer {layer.id}: transport of '{material.name}' needs a mass, "
                f"but the material has no density or area weight",
                entity_id=material.id,
            )
        factor = transport_emission_factor(material.transport_mode)
        emissions = transport_emissions_kgco2(quantity.mass_kg, km, factor)
        self.audit.log_calculation(
            context=f"Layer {layer.id} ({material.name}): A4 from distance",
            formula="Mass(t) * Dist(km) * EF_Mode",
            variables={"Mass_t": round(quantity.mass_kg / 1000.0, 4), "Dist_km": km,
                       "Mode": material.transport_mode, "EF_Mode": factor},
            result=emissions,
            unit="kgCO2e",
        )
        return emissions

    def _apply_eol_scenario(self, layer: Layer, values: dict):
        scenario = layer.custom_eol_scenario.strip().lower()
        factors = self.settings.eol_scenario_factors.get(scenario)
        if not factors:
            logger.debug(f"Layer {layer.id}: no factors for end-of-life scenario '{scenario}', using declared values")
            return
        for phase, factor in factors.items():
            field_name = PHASE_FIELDS[phase]
            values[field_name] = values[field_name] * factor
