from typing import Literal

# ============================================================================
# PHASES
# ============================================================================

# Phases a material declares a GWP coefficient for (per declared unit).
COEFFICIENT_PHASES = ("A1-A3", "A4", "A5", "C1", "C2", "C3", "C4", "D")

# Phases reported by the engine. B4 is derived from replacements.
REPORTED_PHASES = ("A1-A3", "A4", "A5", "B4", "C1", "C2", "C3", "C4", "D")

END_OF_LIFE_PHASES = ("C1", "C2", "C3", "C4")

# Phase identifier -> attribute name on PhaseTable / PhaseCoefficients
PHASE_FIELDS = {
    "A1-A3": "a1_a3",
    "A4": "a4",
    "A5": "a5",
    "B4": "b4",
    "C1": "c1",
    "C2": "c2",
    "C3": "c3",
    "C4": "c4",
    "D": "d",
}

PHASE_LABELS = {
    "A1-A3": "Production",
    "A4": "Transport",
    "A5": "Construction",
    "B4": "Replacement",
    "C1": "Deconstruction",
    "C2": "Waste transport",
    "C3": "Waste processing",
    "C4": "Disposal",
    "D": "Benefits beyond system boundary",
}

# ============================================================================
# DEFAULT TABLES
# ============================================================================

# Reference service life by material category (years)
DEFAULT_SERVICE_LIFE = {
    "concrete": 100,
    "timber": 75,
    "masonry": 100,
    "metal": 75,
    "insulation": 50,
    "glass": 30,
    "finishes": 25,
}

# Used when neither the layer, the material nor its category give a service life
GLOBAL_DEFAULT_SERVICE_LIFE = 50

# Default transport distance by material category (km)
DEFAULT_TRANSPORT_DISTANCES = {
    "concrete": 50,
    "masonry": 50,
    "timber": 200,
    "metal": 500,
    "insulation": 500,
    "glass": 500,
    "finishes": 200,
}

GLOBAL_DEFAULT_TRANSPORT_DISTANCE_KM = 150

# kg CO2-eq per tonne-km
TRANSPORT_EMISSION_FACTORS = {
    "truck": 0.062,
    "train": 0.022,
    "ship": 0.008,
    "combined": 0.050,
}

DEFAULT_TRANSPORT_MODE = "truck"

# A5 (construction) as a fraction of A1-A3, by element category
A5_FACTORS = {
    "exterior_wall": 0.05,
    "interior_wall": 0.03,
    "floor": 0.04,
    "roof": 0.06,
    "foundation": 0.08,
    "windows": 0.02,
    "doors": 0.02,
    "mep": 0.10,
    "finishes": 0.03,
    "other": 0.05,
}

# Typical operational carbon by energy label (kg CO2-eq/m2/year)
OPERATIONAL_CARBON_BY_LABEL = {
    "A++++": 5,
    "A+++": 8,
    "A++": 12,
    "A+": 18,
    "A": 25,
    "B": 35,
    "C": 45,
    "D": 55,
}

# MPG limit (kg CO2-eq/m2/year) applied when a building type has no reference value.
# The verdict is then marked provisional.
DEFAULT_MPG_LIMIT = 0.8

# MPG Bepalingsmethode 2024 limits
DEFAULT_REFERENCE_VALUES = [
    {"building_type": "woningbouw", "mpg_limit": 0.8, "energy_label": "A", "operational_carbon": 25},
    {"building_type": "vrijstaand", "mpg_limit": 0.8, "energy_label": "A", "operational_carbon": 25},
    {"building_type": "rijwoning", "mpg_limit": 0.8, "energy_label": "A", "operational_carbon": 25},
    {"building_type": "appartement", "mpg_limit": 0.8, "energy_label": "A", "operational_carbon": 25},
    {"building_type": "utiliteitsbouw", "mpg_limit": 0.5, "energy_label": "A", "operational_carbon": 20},
]
REFERENCE_VALUE_SOURCE = "MPG Bepalingsmethode 2024"
REFERENCE_VALUE_VALID_FROM = "2024-01-01"

DEFAULT_DECLARED_UNIT = "1 kg"

AREA_UNITS = ("m2", "m²", "sqm")

DECIMALS = 3

# ============================================================================
# TYPES
# ============================================================================

Phase = Literal["A1-A3", "A4", "A5", "B4", "C1", "C2", "C3", "C4", "D"]
DeclaredUnitKind = Literal["mass", "volume", "area", "other"]
CalculationStatus = Literal["pending", "succeeded", "failed"]
BuildingType = Literal[
    "vrijstaand", "twee_onder_een_kap", "rijwoning", "appartement",
    "woningbouw", "utiliteitsbouw", "custom",
]
ElementCategory = Literal[
    "exterior_wall", "interior_wall", "floor", "roof", "foundation",
    "windows", "doors", "mep", "finishes", "other",
]
MaterialCategory = Literal[
    "insulation", "concrete", "timber", "masonry", "metal",
    "glass", "finishes", "roofing", "hvac", "other",
]
EnergyLabel = Literal["A++++", "A+++", "A++", "A+", "A", "B", "C", "D"]
TransportMode = Literal["truck", "train", "ship", "combined"]
EOLScenario = Literal["recycling", "incineration", "landfill", "reuse"]
ServiceLifeSource = Literal["custom", "material", "category", "global"]
