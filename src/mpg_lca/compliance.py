import logging
from typing import Optional

from .audit import CalculationAudit
from .config import EngineSettings
from .defaults import resolve_reference_limit, resolve_operational_carbon
from .models import CalculationError, ComplianceVerdict, Project, ProjectTotals, ReferenceValue

logger = logging.getLogger(__name__)


class ComplianceEvaluator:
    """
    MPG (kg CO2-eq per m2 GFA per year) against the limit for the building type.

        MPG = total / gross floor area / study period

    The total is A-C; module D is added only with include_d_in_compliance.
    A value exactly at the limit complies.
    """

    def __init__(self, settings: Optional[EngineSettings] = None, audit: Optional[CalculationAudit] = None):
        self.settings = settings or EngineSettings()
        self.audit = audit or CalculationAudit()

    def compliance_total(self, totals: ProjectTotals) -> float:
        if self.settings.include_d_in_compliance:
            return totals.total_with_d
        return totals.total_a_to_c

    def evaluate(
        self,
        project: Project,
        totals: ProjectTotals,
        reference_value: Optional[ReferenceValue],
    ) -> ComplianceVerdict:
        total = self.compliance_total(totals)
        mpg = total / project.gross_floor_area / project.study_period
        self.audit.log_calculation(
            context=f"Project {project.id}: MPG",
            formula="Total / GFA(m2) / StudyPeriod(yr)",
            variables={
                "Total": round(total, 4),
                "GFA_m2": project.gross_floor_area,
                "StudyPeriod": project.study_period,
                "IncludesD": self.settings.include_d_in_compliance,
            },
            result=mpg,
            unit="kgCO2e/m2/yr",
        )

        limit, source, missing = resolve_reference_limit(reference_value, project.building_type, self.settings)
        provisional = missing is not None
        warning = None
        if missing is not None:
            warning = CalculationError(kind=missing.kind, entity_id=missing.entity_id, message=missing.message)

        operational = resolve_operational_carbon(project.energy_label, reference_value)
        total_carbon = None
        if operational is not None:
            total_carbon = mpg + operational / project.study_period

        verdict = ComplianceVerdict(
            building_type=project.building_type,
            mpg_value=mpg,
            reference_limit=limit,
            is_compliant=mpg <= limit,
            provisional=provisional,
            reference_source=source,
            operational_carbon=operational,
            total_carbon=total_carbon,
            warning=warning,
        )
        logger.debug(
            f"Project {project.id}: MPG {mpg:.4f} vs limit {limit} -> "
            f"{'compliant' if verdict.is_compliant else 'not compliant'}"
            f"{' (provisional)' if provisional else ''}"
        )
        return verdict
