from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Optional, Tuple

from .constants import (
    PHASE_FIELDS, REPORTED_PHASES, COEFFICIENT_PHASES,
    CalculationStatus, DeclaredUnitKind, ServiceLifeSource, Phase,
    BuildingType, ElementCategory, MaterialCategory, EnergyLabel, TransportMode, EOLScenario,
)


# ============================================================================
# PHASE VALUES
# ============================================================================

@dataclass(frozen=True)
class PhaseCoefficients:
    """
    GWP coefficients of a material, per declared unit (kg CO2-eq).
    Every phase is present; undeclared phases are 0.0.
    """
    a1_a3: float = 0.0
    a4: float = 0.0
    a5: float = 0.0
    c1: float = 0.0
    c2: float = 0.0
    c3: float = 0.0
    c4: float = 0.0
    d: float = 0.0

    def get(self, phase: str) -> float:
        if phase not in COEFFICIENT_PHASES:
            raise KeyError(f"Unknown coefficient phase '{phase}'")
        return getattr(self, PHASE_FIELDS[phase])


@dataclass(frozen=True)
class PhaseTable:
    """
    Phase-indexed impact table (kg CO2-eq).

    total_a_to_c excludes module D, which is reported separately.
    """
    a1_a3: float = 0.0
    a4: float = 0.0
    a5: float = 0.0
    b4: float = 0.0
    c1: float = 0.0
    c2: float = 0.0
    c3: float = 0.0
    c4: float = 0.0
    d: float = 0.0

    @classmethod
    def zero(cls) -> "PhaseTable":
        return cls()

    def get(self, phase: Phase) -> float:
        if phase not in PHASE_FIELDS:
            raise KeyError(f"Unknown phase '{phase}'")
        return getattr(self, PHASE_FIELDS[phase])

    def __add__(self, other: "PhaseTable") -> "PhaseTable":
        if not isinstance(other, PhaseTable):
            return NotImplemented
        return PhaseTable(**{
            name: getattr(self, name) + getattr(other, name)
            for name in PHASE_FIELDS.values()
        })

    def with_phase(self, phase: str, value: float) -> "PhaseTable":
        return replace(self, **{PHASE_FIELDS[phase]: value})

    @property
    def c_total(self) -> float:
        return self.c1 + self.c2 + self.c3 + self.c4

    @property
    def c1_c2(self) -> float:
        return self.c1 + self.c2

    @property
    def total_a_to_c(self) -> float:
        return self.a1_a3 + self.a4 + self.a5 + self.b4 + self.c1 + self.c2 + self.c3 + self.c4

    @property
    def total_with_d(self) -> float:
        return self.total_a_to_c + self.d

    def as_dict(self) -> Dict[str, float]:
        return {phase: self.get(phase) for phase in REPORTED_PHASES}


# ============================================================================
# COMPOSITION (INPUT)
# ============================================================================

@dataclass(frozen=True)
class MaterialRecord:
    """
    A material as delivered by the composition store. Coefficients and most
    physical properties are optional; the resolver normalises them.
    """
    id: str
    name: str
    category: MaterialCategory
    declared_unit: Optional[str] = None
    conversion_to_kg: Optional[float] = None
    density: Optional[float] = None
    gwp_a1_a3: Optional[float] = None
    gwp_a4: Optional[float] = None
    gwp_a5: Optional[float] = None
    gwp_c1: Optional[float] = None
    gwp_c2: Optional[float] = None
    gwp_c3: Optional[float] = None
    gwp_c4: Optional[float] = None
    gwp_d: Optional[float] = None
    reference_service_life: Optional[float] = None
    transport_distance_km: Optional[float] = None
    transport_mode: Optional[str] = None
    subcategory: Optional[str] = None
    quality_rating: Optional[int] = None
    is_generic: bool = True

    def coefficient(self, phase: str) -> Optional[float]:
        return getattr(self, "gwp_" + PHASE_FIELDS[phase])


@dataclass(frozen=True)
class DeclaredUnit:
    text: str
    kind: DeclaredUnitKind
    amount: float = 1.0


@dataclass(frozen=True)
class Material:
    """Normalised material, as produced by the MaterialResolver."""
    id: str
    name: str
    category: MaterialCategory
    coefficients: PhaseCoefficients
    declared_phases: FrozenSet[str]
    declared_unit: DeclaredUnit
    conversion_to_kg: Optional[float]
    density: Optional[float]
    reference_service_life: float
    service_life_source: ServiceLifeSource
    transport_distance_km: float
    transport_mode: TransportMode
    quality_rating: Optional[int] = None
    is_generic: bool = True

    @property
    def has_density(self) -> bool:
        return self.density is not None


@dataclass(frozen=True)
class Layer:
    id: str
    element_id: str
    position: int
    material_id: str
    thickness: float            # m
    coverage: float = 1.0       # fraction of the element area
    custom_lifespan: Optional[float] = None
    custom_transport_km: Optional[float] = None
    custom_eol_scenario: Optional[EOLScenario] = None


@dataclass(frozen=True)
class Element:
    id: str
    project_id: str
    name: str
    category: ElementCategory
    quantity: float
    quantity_unit: str = "m2"
    area_per_unit: Optional[float] = None   # m2 per counted unit (pcs)
    sfb_code: Optional[str] = None


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    gross_floor_area: float     # m2
    building_type: BuildingType
    study_period: float = 75.0  # years
    energy_label: Optional[EnergyLabel] = None
    construction_system: Optional[str] = None


@dataclass(frozen=True)
class ReferenceValue:
    building_type: BuildingType
    mpg_limit: float            # kg CO2-eq/m2/year
    energy_label: Optional[str] = None
    operational_carbon: Optional[float] = None
    source: Optional[str] = None
    valid_from: Optional[str] = None


@dataclass(frozen=True)
class ElementComposition:
    element: Element
    layers: Tuple[Layer, ...]


@dataclass(frozen=True)
class CompositionSnapshot:
    """
    One consistent read of a project's composition. Nothing downstream
    performs further I/O.
    """
    project: Project
    elements: Tuple[ElementComposition, ...]
    materials: Dict[str, MaterialRecord]
    reference_value: Optional[ReferenceValue]


# ============================================================================
# RESULTS
# ============================================================================

@dataclass(frozen=True)
class LayerQuantity:
    volume_m3: float
    mass_kg: Optional[float]
    units: float                # quantity in declared units


@dataclass(frozen=True)
class ReplacementSchedule:
    service_life_years: float
    service_life_source: ServiceLifeSource
    replacements: int
    b4: float


@dataclass(frozen=True)
class LayerResult:
    layer_id: str
    material_id: str
    material_name: str
    position: int
    quantity: LayerQuantity
    installation: PhaseTable    # one installed instance, b4 == 0
    schedule: ReplacementSchedule

    @property
    def phases(self) -> PhaseTable:
        return self.installation.with_phase("B4", self.schedule.b4)


@dataclass(frozen=True)
class ElementResult:
    element_id: str
    element_name: str
    category: str
    area_m2: float
    phases: PhaseTable
    layers: Tuple[LayerResult, ...]

    @property
    def total_a_to_c(self) -> float:
        return self.phases.total_a_to_c

    @property
    def total_with_d(self) -> float:
        return self.phases.total_with_d


@dataclass(frozen=True)
class ElementBreakdown:
    element_id: str
    element_name: str
    total_impact: float
    percentage: float


@dataclass(frozen=True)
class ProjectTotals:
    phases: PhaseTable
    total_a_to_c: float
    total_with_d: float
    per_m2: float
    breakdown_by_element: Tuple[ElementBreakdown, ...]
    breakdown_by_phase: Dict[str, float] = field(default_factory=dict)

    @property
    def c1_c2(self) -> float:
        return self.phases.c1_c2

    @property
    def c3(self) -> float:
        return self.phases.c3

    @property
    def c4(self) -> float:
        return self.phases.c4


@dataclass(frozen=True)
class CalculationError:
    kind: str
    entity_id: Optional[str]
    message: str


@dataclass(frozen=True)
class ComplianceVerdict:
    building_type: str
    mpg_value: float            # kg CO2-eq/m2/year
    reference_limit: float
    is_compliant: bool
    provisional: bool
    reference_source: Optional[str] = None
    operational_carbon: Optional[float] = None
    total_carbon: Optional[float] = None
    # set when provisional: why the default limit was used
    warning: Optional[CalculationError] = None


@dataclass(frozen=True)
class CalculationResult:
    """
    Sole output of the engine. Starts pending; a run moves it to succeeded
    or failed exactly once.
    """
    project_id: str
    status: CalculationStatus = "pending"
    phases: Optional[PhaseTable] = None
    totals: Optional[ProjectTotals] = None
    elements: Tuple[ElementResult, ...] = ()
    compliance: Optional[ComplianceVerdict] = None
    error: Optional[CalculationError] = None

    @classmethod
    def pending(cls, project_id: str) -> "CalculationResult":
        return cls(project_id=project_id)

    def _require_pending(self):
        if self.status != "pending":
            raise ValueError(f"Calculation for {self.project_id} is already {self.status}")

    def succeed(
        self,
        totals: ProjectTotals,
        elements: Tuple[ElementResult, ...],
        compliance: ComplianceVerdict,
    ) -> "CalculationResult":
        self._require_pending()
        return replace(
            self,
            status="succeeded",
            phases=totals.phases,
            totals=totals,
            elements=tuple(elements),
            compliance=compliance,
        )

    def fail(self, error: CalculationError) -> "CalculationResult":
        self._require_pending()
        return replace(self, status="failed", error=error)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def mpg_value(self) -> Optional[float]:
        return self.compliance.mpg_value if self.compliance else None

    @property
    def is_compliant(self) -> Optional[bool]:
        return self.compliance.is_compliant if self.compliance else None
