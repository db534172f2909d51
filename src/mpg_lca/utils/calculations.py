import re
from math import ceil
from typing import Optional

from ..constants import DECIMALS, AREA_UNITS
from ..models import DeclaredUnit

_UNIT_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)?\s*([^\s]+)")

_MASS_TOKENS = {"kg": 1.0, "t": 1000.0, "ton": 1000.0, "tonne": 1000.0, "g": 0.001}
_VOLUME_TOKENS = ("m3", "m³", "cbm")
_AREA_TOKENS = ("m2", "m²", "sqm")


def f3(x: float, decimals: int = DECIMALS) -> str:
    """
    Format a float with a fixed number of decimal places.
    """
    return f"{x:.{decimals}f}"


def parse_declared_unit(text: str) -> DeclaredUnit:
    """
    Parse an EPD declared unit such as '1 kg', '1 m³', '1 m2', '1000 kg' or '1 t'.

    Mass amounts are expressed in kg (so '1 t' has amount 1000). Anything that
    is not a mass, volume or area unit is kind 'other'.
    """
    match = _UNIT_RE.match(text or "")
    if not match:
        return DeclaredUnit(text=text, kind="other", amount=1.0)

    amount = float(match.group(1).replace(",", ".")) if match.group(1) else 1.0
    token = match.group(2).lower()

    if token in _MASS_TOKENS:
        return DeclaredUnit(text=text, kind="mass", amount=amount * _MASS_TOKENS[token])
    if token in _VOLUME_TOKENS:
        return DeclaredUnit(text=text, kind="volume", amount=amount)
    if token in _AREA_TOKENS:
        return DeclaredUnit(text=text, kind="area", amount=amount)
    return DeclaredUnit(text=text, kind="other", amount=amount)


def is_area_unit(unit: Optional[str]) -> bool:
    return (unit or "").strip().lower() in AREA_UNITS


def installed_volume_m3(thickness_m: float, coverage: float, area_m2: float) -> float:
    """
    Installed volume of one layer: thickness x coverage x element area.
    Coverage is the share of the element area the layer occupies (e.g. studs).
    """
    return thickness_m * coverage * area_m2


def replacement_count(study_period: float, service_life: float) -> int:
    """
    Number of replacements over the study period.

        replacements = max(0, ceil(study_period / service_life) - 1)

    The layer installed at year 0 is not a replacement, and neither is the
    layer still standing at the end of the study period. A service life of
    25 years over 75 years gives 2 (replaced at 25 and 50).
    """
    # rounding keeps 75 / 7.5 style ratios from drifting past an integer
    cycles = ceil(round(study_period / service_life, 9))
    return max(0, cycles - 1)


def transport_emissions_kgco2(mass_kg: float, distance_km: float, emission_factor: float) -> float:
    """
    Road/rail/ship transport: mass (t) x distance (km) x factor (kgCO2e/tkm).
    """
    return (mass_kg / 1000.0) * distance_km * emission_factor
