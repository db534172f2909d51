from .models import (
    Project,
    Element,
    Layer,
    MaterialRecord,
    ReferenceValue,
    PhaseTable,
    CalculationResult,
)
from .config import EngineSettings, load_settings
from .errors import (
    LCAError,
    MaterialNotFound,
    UnitConversionError,
    InvalidGeometry,
)
from .repository import InMemoryCompositionSource, ExcelCompositionSource
from .engine import CalculationOrchestrator, calculate_project

__all__ = [
    "Project",
    "Element",
    "Layer",
    "MaterialRecord",
    "ReferenceValue",
    "PhaseTable",
    "CalculationResult",
    "EngineSettings",
    "load_settings",
    "LCAError",
    "MaterialNotFound",
    "UnitConversionError",
    "InvalidGeometry",
    "InMemoryCompositionSource",
    "ExcelCompositionSource",
    "CalculationOrchestrator",
    "calculate_project",
]
