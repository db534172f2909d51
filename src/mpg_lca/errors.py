from typing import Optional


class LCAError(Exception):
    """
    Base class for engine errors. Carries a machine-readable kind and the
    identifier of the offending project/element/layer/material.
    """
    kind = "LCAError"

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class ProjectNotFound(LCAError):
    kind = "ProjectNotFound"


class MaterialNotFound(LCAError):
    """A layer references a material that cannot be resolved."""
    kind = "MaterialNotFound"


class UnitConversionError(LCAError):
    """A material (or element quantity) cannot be sized in its declared unit."""
    kind = "UnitConversionError"


class InvalidGeometry(LCAError):
    """Non-positive thickness/quantity/lifespan, or coverage outside [0, 1]."""
    kind = "InvalidGeometry"


class InvalidMaterialData(LCAError):
    kind = "InvalidMaterialData"


class InvalidComposition(LCAError):
    """Project-level invariants: empty elements, non-positive floor area or study period."""
    kind = "InvalidComposition"


class ReferenceValueMissing(LCAError):
    """
    Recoverable: no reference value for the building type. It is never
    raised; the evaluator falls back to the default limit and records it
    on the verdict, which is then provisional.
    """
    kind = "ReferenceValueMissing"
