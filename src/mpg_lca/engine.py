import logging
from typing import Iterable, List, Optional, Tuple

from .aggregation import ElementAggregator, ProjectAggregator, element_area
from .audit import CalculationAudit
from .compliance import ComplianceEvaluator
from .config import EngineSettings
from .errors import LCAError, InvalidComposition, MaterialNotFound
from .layers import LayerImpactCalculator
from .models import (
    CalculationError, CalculationResult, CompositionSnapshot, ComplianceVerdict,
    ElementComposition, ElementResult, LayerResult, ProjectTotals,
)
from .replacement import ReplacementScheduler
from .repository import CompositionSource, load_snapshot
from .resolver import MaterialResolver

logger = logging.getLogger(__name__)


def validate_project(snapshot: CompositionSnapshot):
    project = snapshot.project
    if project.gross_floor_area is None or not project.gross_floor_area > 0:
        raise InvalidComposition(
            f"Project {project.id} has non-positive gross floor area ({project.gross_floor_area})",
            entity_id=project.id,
        )
    if project.study_period is None or not project.study_period > 0:
        raise InvalidComposition(
            f"Project {project.id} has non-positive study period ({project.study_period})",
            entity_id=project.id,
        )
    if not snapshot.elements:
        raise InvalidComposition(f"Project {project.id} has no elements", entity_id=project.id)
    for composition in snapshot.elements:
        if not composition.layers:
            raise InvalidComposition(
                f"Element '{composition.element.name}' has no layers", entity_id=composition.element.id
            )


class CalculationOrchestrator:
    """
    Runs the full calculation for a project:

        snapshot -> materials -> layers -> replacements -> elements -> project -> compliance

    Every stage works on the snapshot read at the start; no further I/O
    happens. The first engine error aborts the run and the result is
    returned as failed, naming the offending entity. Nothing is ever
    substituted with a zero contribution.
    """

    def __init__(self, source: CompositionSource, settings: Optional[EngineSettings] = None):
        self.source = source
        self.settings = settings or EngineSettings()

    def calculate(self, project_id: str) -> CalculationResult:
        result = CalculationResult.pending(project_id)
        logger.info(f"Calculating project {project_id}")
        try:
            snapshot = load_snapshot(self.source, project_id)
            totals, elements, verdict = self.run_snapshot(snapshot)
        except LCAError as e:
            logger.error(f"Calculation for project {project_id} failed: [{e.kind}] {e.message}")
            return result.fail(CalculationError(kind=e.kind, entity_id=e.entity_id, message=e.message))

        logger.info(
            f"Project {project_id}: MPG {verdict.mpg_value:.4f} kgCO2e/m2/yr "
            f"(limit {verdict.reference_limit}{', provisional' if verdict.provisional else ''})"
        )
        return result.succeed(totals, elements, verdict)

    def calculate_many(self, project_ids: Iterable[str]) -> List[CalculationResult]:
        """Independent runs; one failing project does not stop the others."""
        results = []
        for project_id in project_ids:
            results.append(self.calculate(project_id))
        failed = sum(1 for r in results if not r.succeeded)
        logger.info(f"Batch complete: {len(results) - failed} succeeded, {failed} failed")
        return results

    def run_snapshot(
        self, snapshot: CompositionSnapshot
    ) -> Tuple[ProjectTotals, Tuple[ElementResult, ...], ComplianceVerdict]:
        """Pure part of a run. Raises LCAError on the first fatal problem."""
        validate_project(snapshot)
        project = snapshot.project
        audit = CalculationAudit(enabled=self.settings.debug, log_file=self.settings.audit_path)

        resolver = MaterialResolver(snapshot, self.settings)
        calculator = LayerImpactCalculator(self.settings, audit)
        scheduler = ReplacementScheduler(project.study_period, self.settings, audit)
        element_aggregator = ElementAggregator()

        elements = tuple(
            self._element(composition, resolver, calculator, scheduler, element_aggregator)
            for composition in snapshot.elements
        )
        totals = ProjectAggregator().aggregate(project, elements)
        verdict = ComplianceEvaluator(self.settings, audit).evaluate(project, totals, snapshot.reference_value)
        return totals, elements, verdict

    def _element(
        self,
        composition: ElementComposition,
        resolver: MaterialResolver,
        calculator: LayerImpactCalculator,
        scheduler: ReplacementScheduler,
        aggregator: ElementAggregator,
    ) -> ElementResult:
        element = composition.element
        area = element_area(element)
        layer_results = []
        for layer in composition.layers:
            try:
                material = resolver.resolve(layer.material_id)
            except MaterialNotFound as e:
                raise MaterialNotFound(
                    f"Layer {layer.id} of element '{element.name}' references unknown material {layer.material_id}",
                    entity_id=layer.material_id,
                ) from e
            quantity, installation = calculator.calculate(layer, material, area, element.category)
            schedule = scheduler.schedule(layer, material, installation)
            layer_results.append(LayerResult(
                layer_id=layer.id,
                material_id=material.id,
                material_name=material.name,
                position=layer.position,
                quantity=quantity,
                installation=installation,
                schedule=schedule,
            ))
        return aggregator.aggregate(element, area, layer_results)


def calculate_project(
    source: CompositionSource,
    project_id: str,
    settings: Optional[EngineSettings] = None,
) -> CalculationResult:
    return CalculationOrchestrator(source, settings).calculate(project_id)
