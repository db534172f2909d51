import logging
from typing import Iterable, Sequence

from .errors import InvalidGeometry, InvalidComposition, UnitConversionError
from .models import (
    Element, ElementBreakdown, ElementResult, LayerResult, PhaseTable, Project, ProjectTotals,
)
from .utils.calculations import is_area_unit

logger = logging.getLogger(__name__)


def element_area(element: Element) -> float:
    """
    Usable area (m2) of an element. Area quantities are taken as is;
    counted quantities need an area per unit.
    """
    if element.quantity is None or not element.quantity > 0:
        raise InvalidGeometry(
            f"Element '{element.name}' has non-positive quantity ({element.quantity})", entity_id=element.id
        )
    if is_area_unit(element.quantity_unit):
        return float(element.quantity)
    if element.area_per_unit is not None and element.area_per_unit > 0:
        return float(element.quantity) * float(element.area_per_unit)
    raise UnitConversionError(
        f"Element '{element.name}' is measured in '{element.quantity_unit}' and has no area per unit",
        entity_id=element.id,
    )


def sum_phases(tables: Iterable[PhaseTable]) -> PhaseTable:
    total = PhaseTable.zero()
    for table in tables:
        total = total + table
    return total


class ElementAggregator:
    def aggregate(self, element: Element, area_m2: float, layers: Sequence[LayerResult]) -> ElementResult:
        if not layers:
            raise InvalidComposition(f"Element '{element.name}' has no layers", entity_id=element.id)
        ordered = tuple(sorted(layers, key=lambda lr: lr.position))
        phases = sum_phases(lr.phases for lr in ordered)
        logger.debug(
            f"Element '{element.name}': {len(ordered)} layers, A-C {phases.total_a_to_c:.3f} kgCO2e"
        )
        return ElementResult(
            element_id=element.id,
            element_name=element.name,
            category=element.category,
            area_m2=area_m2,
            phases=phases,
            layers=ordered,
        )


class ProjectAggregator:
    """
    Project totals from element results.

    total_a_to_c leaves module D out; total_with_d adds it back. Element
    percentages are shares of the project A-C total.
    """

    def aggregate(self, project: Project, elements: Sequence[ElementResult]) -> ProjectTotals:
        phases = sum_phases(e.phases for e in elements)
        total_a_to_c = phases.total_a_to_c

        breakdown = tuple(
            ElementBreakdown(
                element_id=e.element_id,
                element_name=e.element_name,
                total_impact=e.total_a_to_c,
                percentage=(e.total_a_to_c / total_a_to_c * 100.0) if total_a_to_c > 0 else 0.0,
            )
            for e in elements
        )

        by_phase = {
            "production": phases.a1_a3,
            "transport": phases.a4,
            "construction": phases.a5,
            "use_replacement": phases.b4,
            "end_of_life": phases.c_total,
            "benefits": phases.d,
        }

        return ProjectTotals(
            phases=phases,
            total_a_to_c=total_a_to_c,
            total_with_d=phases.total_with_d,
            per_m2=total_a_to_c / project.gross_floor_area,
            breakdown_by_element=breakdown,
            breakdown_by_phase=by_phase,
        )
