import logging
from typing import Dict, Mapping, Optional, Union

from .config import EngineSettings
from .constants import COEFFICIENT_PHASES, PHASE_FIELDS
from .defaults import (
    resolve_declared_unit, resolve_density, resolve_conversion_to_kg,
    resolve_service_life, resolve_transport,
)
from .errors import MaterialNotFound, InvalidMaterialData
from .models import CompositionSnapshot, Material, MaterialRecord, PhaseCoefficients

logger = logging.getLogger(__name__)


class MaterialResolver:
    """
    Turns raw material records into normalised Materials.

    Lookups are answered from the records loaded with the snapshot, never
    from the store. Resolved materials are memoised for the lifetime of the
    resolver, which is one calculation run.
    """

    def __init__(
        self,
        materials: Union[CompositionSnapshot, Mapping[str, MaterialRecord]],
        settings: Optional[EngineSettings] = None,
    ):
        if isinstance(materials, CompositionSnapshot):
            materials = materials.materials
        self.records: Mapping[str, MaterialRecord] = materials
        self.settings = settings or EngineSettings()
        self._cache: Dict[str, Material] = {}

    def resolve(self, material_id: str) -> Material:
        if material_id in self._cache:
            return self._cache[material_id]

        record = self.records.get(material_id)
        if record is None:
            raise MaterialNotFound(f"Material {material_id} not found", entity_id=material_id)

        material = normalise_material(record, self.settings)
        self._cache[material_id] = material
        return material


def normalise_material(record: MaterialRecord, settings: EngineSettings) -> Material:
    """
    Absent coefficients become 0.0. Burden coefficients must be >= 0;
    module D is a credit and may be negative.
    """
    values = {}
    declared = set()
    for phase in COEFFICIENT_PHASES:
        raw = record.coefficient(phase)
        if raw is None:
            values[PHASE_FIELDS[phase]] = 0.0
            continue
        value = float(raw)
        if phase != "D" and value < 0:
            raise InvalidMaterialData(
                f"Material '{record.name}' has a negative {phase} coefficient ({value})",
                entity_id=record.id,
            )
        values[PHASE_FIELDS[phase]] = value
        declared.add(phase)

    unit = resolve_declared_unit(record.declared_unit)
    density = resolve_density(record.density)
    conversion = resolve_conversion_to_kg(record.conversion_to_kg, unit, density)
    service_life, source = resolve_service_life(
        None, record.reference_service_life, record.category, settings
    )
    km, mode = resolve_transport(record.transport_distance_km, record.transport_mode, record.category)

    if not declared:
        logger.warning(f"Material '{record.name}' ({record.id}) declares no GWP coefficients")

    return Material(
        id=record.id,
        name=record.name,
        category=record.category,
        coefficients=PhaseCoefficients(**values),
        declared_phases=frozenset(declared),
        declared_unit=unit,
        conversion_to_kg=conversion,
        density=density,
        reference_service_life=service_life,
        service_life_source=source,
        transport_distance_km=km,
        transport_mode=mode,
        quality_rating=record.quality_rating,
        is_generic=record.is_generic,
    )
