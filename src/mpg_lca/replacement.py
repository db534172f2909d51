import logging
from typing import Optional, Tuple

from .audit import CalculationAudit
from .config import EngineSettings
from .constants import ServiceLifeSource
from .errors import InvalidGeometry
from .models import Layer, Material, PhaseTable, ReplacementSchedule
from .utils.calculations import replacement_count

logger = logging.getLogger(__name__)


class ReplacementScheduler:
    """
    Replacement cycles of a layer over the study period and the resulting
    B4 (replacement) impact.

    Each replacement re-incurs production, transport and construction of a
    new instance plus the end-of-life modules of the replaced one
    (settings.replacement_eol_phases).
    """

    def __init__(
        self,
        study_period: float,
        settings: Optional[EngineSettings] = None,
        audit: Optional[CalculationAudit] = None,
    ):
        self.study_period = float(study_period)
        self.settings = settings or EngineSettings()
        self.audit = audit or CalculationAudit()

    def service_life(self, layer: Layer, material: Material) -> Tuple[float, ServiceLifeSource]:
        if layer.custom_lifespan is not None:
            if not layer.custom_lifespan > 0:
                raise InvalidGeometry(
                    f"Layer {layer.id} has a non-positive custom lifespan ({layer.custom_lifespan} years)",
                    entity_id=layer.id,
                )
            return float(layer.custom_lifespan), "custom"
        return material.reference_service_life, material.service_life_source

    def schedule(self, layer: Layer, material: Material, installation: PhaseTable) -> ReplacementSchedule:
        life, source = self.service_life(layer, material)
        replacements = replacement_count(self.study_period, life)

        per_replacement = installation.a1_a3 + installation.a4 + installation.a5
        per_replacement += sum(installation.get(p) for p in self.settings.replacement_eol_phases)
        b4 = replacements * per_replacement

        if replacements:
            self.audit.log_calculation(
                context=f"Layer {layer.id} ({material.name}): B4 replacement",
                formula="Replacements * (A1-A3 + A4 + A5 + EoL of replaced layer)",
                variables={
                    "StudyPeriod": self.study_period,
                    "ServiceLife": life,
                    "Source": source,
                    "Replacements": replacements,
                    "PerReplacement": round(per_replacement, 4),
                },
                result=b4,
                unit="kgCO2e",
            )
        return ReplacementSchedule(
            service_life_years=life,
            service_life_source=source,
            replacements=replacements,
            b4=b4,
        )
